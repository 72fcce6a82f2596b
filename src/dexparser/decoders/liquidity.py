"""
Table-driven pool liquidity decoding.

AMMs that emit no liquidity event are decoded from the token movements
their add/remove/create instructions cause. Each protocol declares which
discriminators mean what and where the pool, LP mint and fallback amounts
sit; ``TransferLiquidityDecoder`` does the rest.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..constants import TOKENS
from ..models import ClassifiedInstruction, ExtraAction, PoolEvent, PoolEventType, TransferData
from ..utils.binary_cursor import cursor
from ..utils.trade import convert_to_ui_amount
from .base import LiquidityDecoder, match_discriminator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolLayout:
    """Where a liquidity instruction keeps its pool, LP mint and amounts."""
    pool_index: int
    lp_mint_index: Optional[int] = None
    # u64 data offsets used when no transfer carried the amount
    token0_offset: Optional[int] = None
    token1_offset: Optional[int] = None
    lp_offset: Optional[int] = None
    # account positions of the two mints when a side has no transfer
    mint_indexes: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class PoolAction:
    discriminator: bytes
    event_type: PoolEventType
    layout: PoolLayout


def _read_u64_at(data: bytes, offset: Optional[int]) -> Optional[int]:
    if offset is None or offset < 1:
        return None
    with cursor(data) as reader:
        reader.skip(offset)
        value = reader.read_u64()
        return None if reader.has_error else value


def _account(accounts: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(accounts):
        return ""
    return accounts[index]


class TransferLiquidityDecoder(LiquidityDecoder):
    """Pool events reconstructed from an instruction's correlated transfers."""

    program_ids: Tuple[str, ...] = ()
    actions: Tuple[PoolAction, ...] = ()
    # Raydium refuses deposits that moved fewer than two tokens
    min_add_transfers = 0

    def process_liquidity(self) -> List[PoolEvent]:
        events = []
        for ci in self.classified_instructions:
            if ci.program_id not in self.program_ids:
                continue
            event = self.parse_instruction(ci)
            if event is not None:
                events.append(event)
        return events

    def match_action(self, data: bytes) -> Optional[PoolAction]:
        for action in self.actions:
            if match_discriminator(data, action.discriminator):
                return action
        return None

    def instruction_transfers(self, ci: ClassifiedInstruction) -> List[TransferData]:
        return self.get_transfers_for_instruction(ci.program_id, ci.outer_index, ci.inner_index, ExtraAction.ALL)

    def parse_instruction(self, ci: ClassifiedInstruction) -> Optional[PoolEvent]:
        action = self.match_action(ci.data)
        if action is None:
            return None

        transfers = self.instruction_transfers(ci)
        if action.event_type == PoolEventType.ADD and len(transfers) < self.min_add_transfers:
            logger.debug("Skipping %s: deposit with %d transfers", ci.idx, len(transfers))
            return None
        return self.build_event(ci, action, transfers)

    def split_tokens(self, transfers: Sequence[TransferData]) -> Tuple[Optional[TransferData], Optional[TransferData]]:
        lp_transfers = self.utils.get_lp_transfers(transfers)
        token0 = lp_transfers[0] if lp_transfers else None
        token1 = lp_transfers[1] if len(lp_transfers) > 1 else None
        # a lone SOL leg is always the quote side
        if len(lp_transfers) == 1 and token0.info.mint == TOKENS.SOL:
            token0, token1 = None, token0
        return token0, token1

    def build_event(self, ci: ClassifiedInstruction, action: PoolAction,
                    transfers: Sequence[TransferData]) -> PoolEvent:
        layout = action.layout
        accounts = ci.accounts
        token0, token1 = self.split_tokens(transfers)

        if layout.mint_indexes is not None:
            first, second = (_account(accounts, i) for i in layout.mint_indexes)
            # re-seat a single leg that landed on the wrong side
            if token1 is None and token0 is not None and token0.info.mint == second:
                token0, token1 = None, token0
            elif token0 is None and token1 is not None and token1.info.mint == first:
                token0, token1 = token1, None
        else:
            first = second = ""

        lp_kind = "burn" if action.event_type == PoolEventType.REMOVE else "mintTo"
        lp_token = next((t for t in transfers if t.type in (lp_kind, f"{lp_kind}Checked")), None)

        event = self.adapter.get_pool_event_base(action.event_type, ci.program_id)
        event.idx = ci.idx
        event.pool_id = _account(accounts, layout.pool_index)
        if lp_token is not None:
            event.pool_lp_mint = lp_token.info.mint
        else:
            event.pool_lp_mint = _account(accounts, layout.lp_mint_index) or None

        for side, transfer, fallback_mint, offset in (
            ("token0", token0, first, layout.token0_offset),
            ("token1", token1, second, layout.token1_offset),
        ):
            mint = transfer.info.mint if transfer is not None else fallback_mint
            decimals = self.adapter.get_token_decimals(mint) if mint else 0
            setattr(event, f"{side}_mint", mint or None)
            setattr(event, f"{side}_decimals", decimals)
            if transfer is not None:
                setattr(event, f"{side}_amount", transfer.info.token_amount.ui_amount)
                setattr(event, f"{side}_amount_raw", transfer.info.token_amount.amount)
                continue
            raw = _read_u64_at(ci.data, offset)
            if raw is not None:
                setattr(event, f"{side}_amount", convert_to_ui_amount(raw, decimals))
                setattr(event, f"{side}_amount_raw", str(raw))

        if lp_token is not None:
            event.lp_amount = lp_token.info.token_amount.ui_amount
            event.lp_amount_raw = lp_token.info.token_amount.amount
        else:
            raw = _read_u64_at(ci.data, layout.lp_offset)
            if raw is not None:
                lp_decimals = self.adapter.get_token_decimals(event.pool_lp_mint or "")
                event.lp_amount = convert_to_ui_amount(raw, lp_decimals)
                event.lp_amount_raw = str(raw)
        return event
