"""PumpSwap AMM decoders: swaps and pool liquidity from self-CPI event logs."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from ..constants import DEX_PROGRAMS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, FeeInfo, PoolEvent, PoolEventType, TokenInfo, TradeInfo, TradeType
from ..utils.binary_cursor import BinaryCursor, cursor
from ..utils.trade import convert_to_ui_amount, get_trade_type, parse_idx
from .base import LiquidityDecoder, TradeDecoder, register_decoder

logger = logging.getLogger(__name__)

PUMPSWAP = DEX_PROGRAMS.PUMP_SWAP
_SWAP_EVENT_BASE_LEN = 8 + 13 * 8 + 6 * 32


@dataclass
class SwapEvent:
    """Buy and sell events share one layout; amount meanings flip with direction."""
    kind: TradeType
    timestamp: int
    base_amount: int
    quote_amount: int
    protocol_fee: int
    pool: str
    user: str
    user_base_account: str
    user_quote_account: str
    protocol_fee_recipient: str
    protocol_fee_recipient_account: str
    coin_creator: str = ""
    coin_creator_fee: int = 0
    idx: str = ""


@dataclass
class LiquidityEvent:
    kind: PoolEventType
    pool: str
    user: str
    base_amount: int
    quote_amount: int
    lp_amount: int
    user_base_account: str = ""
    user_quote_account: str = ""
    user_pool_account: str = ""
    base_mint: str = ""
    quote_mint: str = ""
    base_decimals: Optional[int] = None
    quote_decimals: Optional[int] = None
    lp_mint: str = ""
    idx: str = ""


PumpswapEvent = Union[SwapEvent, LiquidityEvent]


def _decode_swap(reader: BinaryCursor, kind: TradeType) -> Optional[SwapEvent]:
    total = len(reader.buffer)
    timestamp = reader.read_i64()
    base_amount = reader.read_u64()
    reader.skip(8)       # limit quote amount
    reader.skip(4 * 8)   # user and pool reserves
    reader.skip(8)       # quote amount before fees
    reader.skip(16)      # lp fee bps, lp fee
    reader.skip(8)       # protocol fee bps
    protocol_fee = reader.read_u64()
    quote_with_lp_fee = reader.read_u64()
    user_quote_amount = reader.read_u64()
    event = SwapEvent(
        kind=kind,
        timestamp=timestamp,
        base_amount=base_amount,
        # buys pay the quote amount including the lp fee, sells receive the user amount
        quote_amount=quote_with_lp_fee if kind == TradeType.BUY else user_quote_amount,
        protocol_fee=protocol_fee,
        pool=reader.read_pubkey(),
        user=reader.read_pubkey(),
        user_base_account=reader.read_pubkey(),
        user_quote_account=reader.read_pubkey(),
        protocol_fee_recipient=reader.read_pubkey(),
        protocol_fee_recipient_account=reader.read_pubkey(),
    )
    if reader.has_error:
        return None
    if total > _SWAP_EVENT_BASE_LEN:
        event.coin_creator = reader.read_pubkey()
        reader.skip(8)
        event.coin_creator_fee = reader.read_u64()
        if reader.has_error:
            event.coin_creator, event.coin_creator_fee = "", 0
    return event


def _decode_deposit_or_withdraw(reader: BinaryCursor, kind: PoolEventType) -> Optional[LiquidityEvent]:
    reader.skip(8)  # timestamp
    lp_amount = reader.read_u64()
    reader.skip(16)      # min/max base and quote
    reader.skip(4 * 8)   # reserves
    base_amount = reader.read_u64()
    quote_amount = reader.read_u64()
    reader.skip(8)       # lp mint supply
    event = LiquidityEvent(
        kind=kind,
        lp_amount=lp_amount,
        base_amount=base_amount,
        quote_amount=quote_amount,
        pool=reader.read_pubkey(),
        user=reader.read_pubkey(),
        user_base_account=reader.read_pubkey(),
        user_quote_account=reader.read_pubkey(),
        user_pool_account=reader.read_pubkey(),
    )
    return None if reader.has_error else event


def _decode_create_pool(reader: BinaryCursor) -> Optional[LiquidityEvent]:
    reader.skip(8)  # timestamp
    reader.skip(2)  # index
    creator = reader.read_pubkey()
    base_mint = reader.read_pubkey()
    quote_mint = reader.read_pubkey()
    base_decimals = reader.read_u8()
    quote_decimals = reader.read_u8()
    base_amount = reader.read_u64()
    quote_amount = reader.read_u64()
    reader.skip(4 * 8)  # pool amounts, minimum and initial liquidity
    lp_amount = reader.read_u64()
    reader.skip(1)      # bump
    pool = reader.read_pubkey()
    lp_mint = reader.read_pubkey()
    if reader.has_error:
        return None
    return LiquidityEvent(
        kind=PoolEventType.CREATE,
        pool=pool,
        user=creator,
        base_amount=base_amount,
        quote_amount=quote_amount,
        lp_amount=lp_amount,
        base_mint=base_mint,
        quote_mint=quote_mint,
        base_decimals=base_decimals,
        quote_decimals=quote_decimals,
        lp_mint=lp_mint,
    )


def parse_pumpswap_events(instructions: Sequence[ClassifiedInstruction]) -> List[PumpswapEvent]:
    events: List[PumpswapEvent] = []
    for ci in instructions:
        if ci.program_id != PUMPSWAP.id or len(ci.data) < 16:
            continue
        tag = ci.data[:16]
        with cursor(ci.data[16:]) as reader:
            if tag == disc.PUMPSWAP.BUY_EVENT:
                event = _decode_swap(reader, TradeType.BUY)
            elif tag == disc.PUMPSWAP.SELL_EVENT:
                event = _decode_swap(reader, TradeType.SELL)
            elif tag == disc.PUMPSWAP.ADD_LIQUIDITY_EVENT:
                event = _decode_deposit_or_withdraw(reader, PoolEventType.ADD)
            elif tag == disc.PUMPSWAP.REMOVE_LIQUIDITY_EVENT:
                event = _decode_deposit_or_withdraw(reader, PoolEventType.REMOVE)
            elif tag == disc.PUMPSWAP.CREATE_POOL_EVENT:
                event = _decode_create_pool(reader)
            else:
                continue
        if event is None:
            logger.debug("Malformed PumpSwap event at %s", ci.idx)
            continue
        event.idx = ci.idx
        events.append(event)
    events.sort(key=lambda e: parse_idx(e.idx))
    return events


class PumpswapDecoder(TradeDecoder):

    def process_trades(self) -> List[TradeInfo]:
        trades = []
        for event in parse_pumpswap_events(self.classified_instructions):
            if isinstance(event, SwapEvent):
                trade = self._build_trade(event)
                if trade is not None:
                    trades.append(self.utils.attach_token_transfer_info(trade, self.transfer_actions))
        return trades

    def _build_trade(self, event: SwapEvent) -> Optional[TradeInfo]:
        base_mint = self.adapter.get_spl_token_mint(event.user_base_account)
        quote_mint = self.adapter.get_spl_token_mint(event.user_quote_account)
        fee_mint = self.adapter.get_spl_token_mint(event.protocol_fee_recipient_account)
        if not base_mint or not quote_mint or not fee_mint:
            return None

        base = self._token(base_mint, event.base_amount)
        quote = self._token(quote_mint, event.quote_amount)
        input_token, output_token = (quote, base) if event.kind == TradeType.BUY else (base, quote)

        fee_decimals = self.adapter.get_token_decimals(fee_mint)
        fee_raw = event.protocol_fee + (event.coin_creator_fee if event.kind == TradeType.BUY else 0)
        fees = [FeeInfo(
            mint=fee_mint,
            amount=convert_to_ui_amount(event.protocol_fee, fee_decimals),
            amount_raw=str(event.protocol_fee),
            decimals=fee_decimals,
            dex=PUMPSWAP.name,
            type="protocol",
            recipient=event.protocol_fee_recipient,
        )]
        if event.coin_creator_fee > 0:
            fees.append(FeeInfo(
                mint=fee_mint,
                amount=convert_to_ui_amount(event.coin_creator_fee, fee_decimals),
                amount_raw=str(event.coin_creator_fee),
                decimals=fee_decimals,
                dex=PUMPSWAP.name,
                type="coinCreator",
                recipient=event.coin_creator,
            ))

        return TradeInfo(
            type=get_trade_type(input_token.mint, output_token.mint),
            pool=[event.pool],
            input_token=input_token,
            output_token=output_token,
            fee=FeeInfo(
                mint=fee_mint,
                amount=convert_to_ui_amount(fee_raw, fee_decimals),
                amount_raw=str(fee_raw),
                decimals=fee_decimals,
                dex=PUMPSWAP.name,
            ),
            fees=fees,
            user=event.user,
            program_id=self.dex_info.program_id or PUMPSWAP.id,
            amm=PUMPSWAP.name,
            route=self.dex_info.route,
            slot=self.adapter.slot,
            timestamp=self.adapter.block_time or event.timestamp,
            signature=self.adapter.signature,
            idx=event.idx,
        )

    def _token(self, mint: str, raw: int) -> TokenInfo:
        decimals = self.adapter.get_token_decimals(mint)
        return TokenInfo(mint=mint, amount=convert_to_ui_amount(raw, decimals), amount_raw=str(raw), decimals=decimals)


class PumpswapLiquidityDecoder(LiquidityDecoder):

    def process_liquidity(self) -> List[PoolEvent]:
        pools = []
        for event in parse_pumpswap_events(self.classified_instructions):
            if isinstance(event, LiquidityEvent):
                pools.append(self._build_pool_event(event))
        return pools

    def _build_pool_event(self, event: LiquidityEvent) -> PoolEvent:
        pool = self.adapter.get_pool_event_base(event.kind, PUMPSWAP.id)
        pool.idx = event.idx
        pool.pool_id = event.pool

        if event.kind == PoolEventType.CREATE:
            token0_mint, token1_mint = event.base_mint, event.quote_mint
            token0_decimals, token1_decimals = event.base_decimals, event.quote_decimals
            pool.pool_lp_mint = event.lp_mint
        else:
            token0_mint = self.adapter.get_spl_token_mint(event.user_base_account)
            token1_mint = self.adapter.get_spl_token_mint(event.user_quote_account)
            token0_decimals = self.adapter.get_token_decimals(token0_mint)
            token1_decimals = self.adapter.get_token_decimals(token1_mint)
            pool.pool_lp_mint = self.adapter.get_spl_token_mint(event.user_pool_account) or None

        pool.token0_mint = token0_mint
        pool.token0_decimals = token0_decimals
        pool.token0_amount_raw = str(event.base_amount)
        pool.token0_amount = convert_to_ui_amount(event.base_amount, token0_decimals or 0)
        pool.token1_mint = token1_mint
        pool.token1_decimals = token1_decimals
        pool.token1_amount_raw = str(event.quote_amount)
        pool.token1_amount = convert_to_ui_amount(event.quote_amount, token1_decimals or 0)
        pool.lp_amount_raw = str(event.lp_amount)
        return pool


register_decoder("trade", [PUMPSWAP.id], PumpswapDecoder)
register_decoder("liquidity", [PUMPSWAP.id], PumpswapLiquidityDecoder)
