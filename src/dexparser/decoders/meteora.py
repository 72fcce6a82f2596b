"""Meteora DLMM, dynamic AMM (DAMM) and DAMM v2 decoders."""

from typing import List

from ..constants import DEX_PROGRAMS, get_program_name
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, DexInfo, PoolEventType, TradeInfo
from .base import TradeDecoder, match_any_discriminator, register_decoder
from .liquidity import PoolAction, PoolLayout, TransferLiquidityDecoder

DLMM = DEX_PROGRAMS.METEORA
DAMM = DEX_PROGRAMS.METEORA_DAMM
DAMM_V2 = DEX_PROGRAMS.METEORA_DAMM_V2

METEORA_PROGRAM_IDS = (DLMM.id, DAMM.id, DAMM_V2.id)

_POOL_ACCOUNT_INDEX = {DLMM.id: 0, DAMM.id: 0, DAMM_V2.id: 1}

_LIQUIDITY = {
    f"liquidity{i}": d
    for i, d in enumerate(
        disc.METEORA_DLMM.ADD_LIQUIDITY
        + disc.METEORA_DLMM.REMOVE_LIQUIDITY
        + disc.METEORA_DAMM.LIQUIDITY
        + disc.METEORA_DAMM_V2.LIQUIDITY
    )
}


class MeteoraDecoder(TradeDecoder):
    """Swaps on every Meteora pool type."""

    def process_trades(self) -> List[TradeInfo]:
        trades = []
        for ci in self.classified_instructions:
            if ci.program_id not in METEORA_PROGRAM_IDS or match_any_discriminator(ci.data, _LIQUIDITY):
                continue
            transfers = self.get_transfers_for_instruction(ci.program_id, ci.outer_index, ci.inner_index)
            if len(transfers) < 2:
                continue
            # DLMM host fees follow the two swap legs
            if ci.program_id == DLMM.id:
                transfers = transfers[:2]

            dex_info = DexInfo(
                program_id=self.dex_info.program_id,
                amm=self.dex_info.amm or get_program_name(ci.program_id),
                route=self.dex_info.route,
            )
            trade = self.utils.process_swap_data(transfers, dex_info)
            if trade is None:
                continue
            pool = self._pool_address(ci)
            if pool:
                trade.pool = [pool]
            trades.append(self.utils.attach_token_transfer_info(trade, self.transfer_actions))
        return trades

    def _pool_address(self, ci: ClassifiedInstruction) -> str:
        if len(ci.accounts) <= 5:
            return ""
        return ci.accounts[_POOL_ACCOUNT_INDEX[ci.program_id]]


_DLMM_POSITION = PoolLayout(pool_index=1, lp_mint_index=1)
_DLMM_WITHDRAW = PoolLayout(pool_index=1, lp_mint_index=1, mint_indexes=(7, 8))


class MeteoraDlmmLiquidityDecoder(TransferLiquidityDecoder):
    program_ids = (DLMM.id,)
    actions = tuple(
        [PoolAction(d, PoolEventType.ADD, _DLMM_POSITION) for d in disc.METEORA_DLMM.ADD_LIQUIDITY]
        + [PoolAction(d, PoolEventType.REMOVE, _DLMM_WITHDRAW) for d in disc.METEORA_DLMM.REMOVE_LIQUIDITY]
    )


# Dynamic AMM args: pool_token_amount, max/min token_a, max/min token_b
_DAMM_DEPOSIT = PoolLayout(pool_index=0, lp_mint_index=1, token0_offset=24, token1_offset=16, lp_offset=8)


class MeteoraDammLiquidityDecoder(TransferLiquidityDecoder):
    program_ids = (DAMM.id,)
    actions = (
        PoolAction(disc.METEORA_DAMM.CREATE, PoolEventType.CREATE,
                   PoolLayout(pool_index=0, lp_mint_index=2, token0_offset=16, token1_offset=8, mint_indexes=(3, 4))),
        PoolAction(disc.METEORA_DAMM.ADD_LIQUIDITY, PoolEventType.ADD, _DAMM_DEPOSIT),
        PoolAction(disc.METEORA_DAMM.ADD_IMBALANCE_LIQUIDITY, PoolEventType.ADD, _DAMM_DEPOSIT),
        PoolAction(disc.METEORA_DAMM.REMOVE_LIQUIDITY, PoolEventType.REMOVE, _DAMM_DEPOSIT),
    )


_DAMM_V2_ADD = PoolLayout(pool_index=0, lp_mint_index=1)
_DAMM_V2_REMOVE = PoolLayout(pool_index=1, lp_mint_index=2, mint_indexes=(7, 8))


class MeteoraDammV2LiquidityDecoder(TransferLiquidityDecoder):
    program_ids = (DAMM_V2.id,)
    actions = (
        PoolAction(disc.METEORA_DAMM_V2.INITIALIZE_POOL, PoolEventType.CREATE,
                   PoolLayout(pool_index=6, lp_mint_index=1, mint_indexes=(8, 9))),
        PoolAction(disc.METEORA_DAMM_V2.INITIALIZE_CUSTOM_POOL, PoolEventType.CREATE,
                   PoolLayout(pool_index=5, lp_mint_index=1, mint_indexes=(7, 8))),
        PoolAction(disc.METEORA_DAMM_V2.INITIALIZE_POOL_WITH_DYNAMIC_CONFIG, PoolEventType.CREATE,
                   PoolLayout(pool_index=7, lp_mint_index=1, mint_indexes=(8, 9))),
        PoolAction(disc.METEORA_DAMM_V2.ADD_LIQUIDITY, PoolEventType.ADD, _DAMM_V2_ADD),
        PoolAction(disc.METEORA_DAMM_V2.CLAIM_POSITION_FEE, PoolEventType.REMOVE, _DAMM_V2_REMOVE),
        PoolAction(disc.METEORA_DAMM_V2.REMOVE_LIQUIDITY, PoolEventType.REMOVE, _DAMM_V2_REMOVE),
        PoolAction(disc.METEORA_DAMM_V2.REMOVE_ALL_LIQUIDITY, PoolEventType.REMOVE, _DAMM_V2_REMOVE),
    )


register_decoder("trade", METEORA_PROGRAM_IDS, MeteoraDecoder)
register_decoder("liquidity", [DLMM.id], MeteoraDlmmLiquidityDecoder)
register_decoder("liquidity", [DAMM.id], MeteoraDammLiquidityDecoder)
register_decoder("liquidity", [DAMM_V2.id], MeteoraDammV2LiquidityDecoder)
