"""Raydium AMM v4, CPMM and concentrated-liquidity decoders."""

import logging
from typing import List, Optional

from ..constants import DEX_PROGRAMS, get_program_name
from ..constants import discriminators as disc
from ..core.swap import transfer_token_info
from ..models import ClassifiedInstruction, DexInfo, FeeInfo, PoolEventType, TradeInfo, TransferData
from .base import TradeDecoder, match_any_discriminator, register_decoder
from .liquidity import PoolAction, PoolLayout, TransferLiquidityDecoder

logger = logging.getLogger(__name__)

RAYDIUM_PROGRAM_IDS = (
    DEX_PROGRAMS.RAYDIUM_V4.id,
    DEX_PROGRAMS.RAYDIUM_AMM.id,
    DEX_PROGRAMS.RAYDIUM_CL.id,
    DEX_PROGRAMS.RAYDIUM_CPMM.id,
)

# Account holding the pool state in each program's swap instruction
_POOL_ACCOUNT_INDEX = {
    DEX_PROGRAMS.RAYDIUM_V4.id: 1,
    DEX_PROGRAMS.RAYDIUM_AMM.id: 1,
    DEX_PROGRAMS.RAYDIUM_CL.id: 2,
    DEX_PROGRAMS.RAYDIUM_CPMM.id: 3,
}

_V4_LIQUIDITY = {
    "create": disc.RAYDIUM.CREATE,
    "add": disc.RAYDIUM.ADD_LIQUIDITY,
    "remove": disc.RAYDIUM.REMOVE_LIQUIDITY,
}
_ANCHOR_LIQUIDITY = {
    f"liquidity{i}": d for i, d in enumerate(disc.RAYDIUM_CL.LIQUIDITY + disc.RAYDIUM_CPMM.LIQUIDITY)
}


def is_liquidity_instruction(ci: ClassifiedInstruction) -> bool:
    data = ci.data
    if not data:
        return False
    # V4 uses one-byte tags; Anchor programs never collide with them at 8 bytes
    if ci.program_id in (DEX_PROGRAMS.RAYDIUM_V4.id, DEX_PROGRAMS.RAYDIUM_AMM.id):
        return match_any_discriminator(data[:1], _V4_LIQUIDITY) is not None
    return match_any_discriminator(data, _ANCHOR_LIQUIDITY) is not None


class RaydiumDecoder(TradeDecoder):
    """Swaps across every Raydium AMM, read from the transfers each swap caused."""

    def process_trades(self) -> List[TradeInfo]:
        trades = []
        for ci in self.classified_instructions:
            if ci.program_id not in RAYDIUM_PROGRAM_IDS or is_liquidity_instruction(ci):
                continue
            transfers = self.get_transfers_for_instruction(ci.program_id, ci.outer_index, ci.inner_index)
            if len(transfers) < 2:
                continue

            dex_info = DexInfo(
                program_id=self.dex_info.program_id,
                amm=self.dex_info.amm or get_program_name(ci.program_id),
                route=self.dex_info.route,
            )
            trade = self.utils.process_swap_data(transfers[:2], dex_info)
            if trade is None:
                continue

            pool = self._pool_address(ci)
            if pool:
                trade.pool = [pool]
            if len(transfers) > 2:
                trade.fee = self._fee_from(transfers[2])
            trades.append(self.utils.attach_token_transfer_info(trade, self.transfer_actions))
        return trades

    def _pool_address(self, ci: ClassifiedInstruction) -> str:
        index = _POOL_ACCOUNT_INDEX.get(ci.program_id)
        if index is None or len(ci.accounts) <= 5:
            return ""
        return ci.accounts[index]

    @staticmethod
    def _fee_from(transfer: TransferData) -> FeeInfo:
        token = transfer_token_info(transfer)
        return FeeInfo(mint=token.mint, amount=token.amount, amount_raw=token.amount_raw, decimals=token.decimals)


class _RaydiumLiquidityDecoder(TransferLiquidityDecoder):
    min_add_transfers = 2

    def instruction_transfers(self, ci: ClassifiedInstruction) -> List[TransferData]:
        # Only legs moving into the instruction's own accounts, plus burns
        accounts = set(ci.accounts)
        return [
            t for t in super().instruction_transfers(ci)
            if not t.info.destination or (t.info.authority and t.info.destination in accounts)
        ]


class RaydiumV4LiquidityDecoder(_RaydiumLiquidityDecoder):
    program_ids = (DEX_PROGRAMS.RAYDIUM_V4.id, DEX_PROGRAMS.RAYDIUM_AMM.id)
    actions = (
        PoolAction(disc.RAYDIUM.CREATE, PoolEventType.CREATE, PoolLayout(pool_index=4, lp_mint_index=7)),
        PoolAction(disc.RAYDIUM.ADD_LIQUIDITY, PoolEventType.ADD, PoolLayout(pool_index=1, lp_mint_index=5)),
        PoolAction(disc.RAYDIUM.REMOVE_LIQUIDITY, PoolEventType.REMOVE, PoolLayout(pool_index=1, lp_mint_index=5)),
    )

    def match_action(self, data: bytes) -> Optional[PoolAction]:
        # one-byte tags: an 8-byte prefix would never match
        return super().match_action(data[:1])


_CPMM_DEPOSIT = PoolLayout(pool_index=2, lp_mint_index=12, token0_offset=16, token1_offset=24, lp_offset=8)


class RaydiumCpmmLiquidityDecoder(_RaydiumLiquidityDecoder):
    program_ids = (DEX_PROGRAMS.RAYDIUM_CPMM.id,)
    actions = (
        PoolAction(disc.RAYDIUM_CPMM.CREATE, PoolEventType.CREATE,
                   PoolLayout(pool_index=3, lp_mint_index=6, token0_offset=8, token1_offset=16)),
        PoolAction(disc.RAYDIUM_CPMM.ADD_LIQUIDITY, PoolEventType.ADD, _CPMM_DEPOSIT),
        PoolAction(disc.RAYDIUM_CPMM.REMOVE_LIQUIDITY, PoolEventType.REMOVE, _CPMM_DEPOSIT),
    )


# increase/decreaseLiquidity: liquidity u128, amount_0 u64, amount_1 u64
_CL_INCREASE = PoolLayout(pool_index=2, lp_mint_index=2, token0_offset=24, token1_offset=32, lp_offset=8)
_CL_DECREASE = PoolLayout(pool_index=3, lp_mint_index=3, token0_offset=24, token1_offset=32, lp_offset=8)


class RaydiumClLiquidityDecoder(_RaydiumLiquidityDecoder):
    program_ids = (DEX_PROGRAMS.RAYDIUM_CL.id,)
    actions = (
        PoolAction(disc.RAYDIUM_CL.OPEN_POSITION, PoolEventType.CREATE, PoolLayout(pool_index=5, lp_mint_index=5)),
        PoolAction(disc.RAYDIUM_CL.OPEN_POSITION_V2, PoolEventType.CREATE, PoolLayout(pool_index=5, lp_mint_index=5)),
        PoolAction(disc.RAYDIUM_CL.CREATE_POOL, PoolEventType.CREATE, PoolLayout(pool_index=4, lp_mint_index=4)),
        PoolAction(disc.RAYDIUM_CL.INCREASE_LIQUIDITY, PoolEventType.ADD, _CL_INCREASE),
        PoolAction(disc.RAYDIUM_CL.INCREASE_LIQUIDITY_V2, PoolEventType.ADD, _CL_INCREASE),
        PoolAction(disc.RAYDIUM_CL.DECREASE_LIQUIDITY, PoolEventType.REMOVE, _CL_DECREASE),
        PoolAction(disc.RAYDIUM_CL.DECREASE_LIQUIDITY_V2, PoolEventType.REMOVE, _CL_DECREASE),
    )


register_decoder("trade", RAYDIUM_PROGRAM_IDS, RaydiumDecoder)
register_decoder("liquidity", RaydiumV4LiquidityDecoder.program_ids, RaydiumV4LiquidityDecoder)
register_decoder("liquidity", RaydiumCpmmLiquidityDecoder.program_ids, RaydiumCpmmLiquidityDecoder)
register_decoder("liquidity", RaydiumClLiquidityDecoder.program_ids, RaydiumClLiquidityDecoder)
