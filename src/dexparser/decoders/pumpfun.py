"""Pumpfun bonding-curve decoders, driven by the program's self-CPI event logs."""

import logging
from typing import Callable, Dict, List, Optional, Sequence

from ..constants import DEX_PROGRAMS, TOKENS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, MemeEvent, TokenInfo, TradeType
from ..utils.binary_cursor import BinaryCursor, cursor
from ..utils.trade import convert_to_ui_amount, get_prev_instruction_by_index, parse_idx
from .base import EventTradeDecoder, MemeDecoder, register_decoder

logger = logging.getLogger(__name__)

PUMPFUN = DEX_PROGRAMS.PUMP_FUN
TOKEN_DECIMALS = 6
SOL_DECIMALS = 9
# Trailing fee block present on newer trade events
_TRADE_FEE_BLOCK = 16 + 32 + 8 + 8 + 32 + 8 + 8


def _decode_trade(reader: BinaryCursor) -> Optional[MemeEvent]:
    mint = reader.read_pubkey()
    sol_amount = reader.read_u64()
    token_amount = reader.read_u64()
    is_buy = reader.read_bool()
    user = reader.read_pubkey()
    timestamp = reader.read_i64()
    virtual_sol = reader.read_u64()
    virtual_token = reader.read_u64()
    if reader.has_error:
        return None

    fee = creator_fee = 0
    creator = None
    if reader.remaining() >= _TRADE_FEE_BLOCK:
        reader.skip(16)  # real reserves
        reader.skip(32)  # fee recipient
        reader.skip(8)   # fee bps
        fee = reader.read_u64()
        creator = reader.read_pubkey()
        reader.skip(8)   # creator fee bps
        creator_fee = reader.read_u64()

    sol = TokenInfo(TOKENS.SOL, convert_to_ui_amount(sol_amount, SOL_DECIMALS), str(sol_amount), SOL_DECIMALS)
    token = TokenInfo(mint, convert_to_ui_amount(token_amount, TOKEN_DECIMALS), str(token_amount), TOKEN_DECIMALS)
    return MemeEvent(
        type=TradeType.BUY if is_buy else TradeType.SELL,
        protocol=PUMPFUN.name,
        timestamp=timestamp,
        user=user,
        base_mint=mint,
        quote_mint=TOKENS.SOL,
        input_token=sol if is_buy else token,
        output_token=token if is_buy else sol,
        protocol_fee=convert_to_ui_amount(fee, SOL_DECIMALS),
        creator_fee=convert_to_ui_amount(creator_fee, SOL_DECIMALS),
        creator=creator,
        pool_a_reserve=convert_to_ui_amount(virtual_token, TOKEN_DECIMALS),
        pool_b_reserve=convert_to_ui_amount(virtual_sol, SOL_DECIMALS),
    )


def _decode_create(reader: BinaryCursor) -> Optional[MemeEvent]:
    name = reader.read_string()
    symbol = reader.read_string()
    uri = reader.read_string()
    mint = reader.read_pubkey()
    bonding_curve = reader.read_pubkey()
    user = reader.read_pubkey()
    if reader.has_error:
        return None

    creator = None
    timestamp = 0
    if reader.remaining() >= 40:
        creator = reader.read_pubkey()
        timestamp = reader.read_i64()

    return MemeEvent(
        type=TradeType.CREATE,
        protocol=PUMPFUN.name,
        timestamp=timestamp,
        user=user,
        base_mint=mint,
        quote_mint=TOKENS.SOL,
        name=name,
        symbol=symbol,
        uri=uri,
        bonding_curve=bonding_curve,
        creator=creator,
        decimals=TOKEN_DECIMALS,
    )


def _decode_complete(reader: BinaryCursor) -> Optional[MemeEvent]:
    user = reader.read_pubkey()
    mint = reader.read_pubkey()
    bonding_curve = reader.read_pubkey()
    timestamp = reader.read_i64()
    if reader.has_error:
        return None
    return MemeEvent(
        type=TradeType.COMPLETE,
        protocol=PUMPFUN.name,
        timestamp=timestamp,
        user=user,
        base_mint=mint,
        quote_mint=TOKENS.SOL,
        bonding_curve=bonding_curve,
    )


def _decode_migrate(reader: BinaryCursor) -> Optional[MemeEvent]:
    user = reader.read_pubkey()
    mint = reader.read_pubkey()
    reader.skip(24)  # mint amount, sol amount, migration fee
    bonding_curve = reader.read_pubkey()
    timestamp = reader.read_i64()
    pool = reader.read_pubkey()
    if reader.has_error:
        return None
    return MemeEvent(
        type=TradeType.MIGRATE,
        protocol=PUMPFUN.name,
        timestamp=timestamp,
        user=user,
        base_mint=mint,
        quote_mint=TOKENS.SOL,
        bonding_curve=bonding_curve,
        pool=pool,
        pool_dex=DEX_PROGRAMS.PUMP_SWAP.name,
    )


_EVENT_DECODERS: Dict[bytes, Callable[[BinaryCursor], Optional[MemeEvent]]] = {
    disc.PUMPFUN.TRADE_EVENT: _decode_trade,
    disc.PUMPFUN.CREATE_EVENT: _decode_create,
    disc.PUMPFUN.COMPLETE_EVENT: _decode_complete,
    disc.PUMPFUN.MIGRATE_EVENT: _decode_migrate,
}


class PumpfunEventDecoder(MemeDecoder):
    """Token launch, trade, completion and migration events."""

    def parse_instructions(self, instructions: Sequence[ClassifiedInstruction]) -> List[MemeEvent]:
        events: List[MemeEvent] = []
        for ci in instructions:
            if ci.program_id != PUMPFUN.id or len(ci.data) < 16:
                continue
            decode = _EVENT_DECODERS.get(ci.data[:16])
            if decode is None:
                continue
            with cursor(ci.data[16:]) as reader:
                event = decode(reader)
            if event is None:
                logger.debug("Malformed Pumpfun event at %s", ci.idx)
                continue

            if event.type in (TradeType.BUY, TradeType.SELL):
                # The bonding curve is the 4th account of the buy/sell that emitted the event
                prev = get_prev_instruction_by_index(instructions, ci.outer_index, max(ci.inner_index, 0))
                if prev is not None and len(prev.accounts) > 3:
                    event.bonding_curve = prev.accounts[3]

            event.signature = self.adapter.signature
            event.slot = self.adapter.slot
            event.timestamp = self.adapter.block_time or event.timestamp
            event.idx = ci.idx
            events.append(event)

        events.sort(key=lambda e: parse_idx(e.idx))
        return events

    def process_events(self) -> List[MemeEvent]:
        return self.parse_instructions(self.classified_instructions)


class PumpfunDecoder(EventTradeDecoder):
    """Bonding-curve buys and sells."""

    program = PUMPFUN
    event_decoder = PumpfunEventDecoder


register_decoder("trade", [PUMPFUN.id], PumpfunDecoder)
register_decoder("meme", [PUMPFUN.id], PumpfunEventDecoder)
