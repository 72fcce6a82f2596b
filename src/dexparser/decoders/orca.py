"""Orca Whirlpool decoders."""

from typing import List

from ..constants import DEX_PROGRAMS, get_program_name
from ..constants import discriminators as disc
from ..models import DexInfo, PoolEventType, TradeInfo
from .base import TradeDecoder, match_any_discriminator, register_decoder
from .liquidity import PoolAction, PoolLayout, TransferLiquidityDecoder

ORCA = DEX_PROGRAMS.ORCA

_LIQUIDITY = {f"liquidity{i}": d for i, d in enumerate(disc.ORCA.LIQUIDITY)}


class OrcaDecoder(TradeDecoder):

    def process_trades(self) -> List[TradeInfo]:
        trades = []
        for ci in self.classified_instructions:
            if ci.program_id != ORCA.id or match_any_discriminator(ci.data, _LIQUIDITY):
                continue
            transfers = self.get_transfers_for_instruction(ci.program_id, ci.outer_index, ci.inner_index)
            if len(transfers) < 2:
                continue
            dex_info = DexInfo(
                program_id=self.dex_info.program_id,
                amm=self.dex_info.amm or get_program_name(ci.program_id),
                route=self.dex_info.route,
            )
            trade = self.utils.process_swap_data(transfers, dex_info)
            if trade is not None:
                trades.append(self.utils.attach_token_transfer_info(trade, self.transfer_actions))
        return trades


# Position liquidity is a u128 right after the discriminator; the whirlpool is account 0
_WHIRLPOOL = PoolLayout(pool_index=0, lp_mint_index=0, lp_offset=8)


class OrcaLiquidityDecoder(TransferLiquidityDecoder):
    program_ids = (ORCA.id,)
    actions = (
        PoolAction(disc.ORCA.ADD_LIQUIDITY, PoolEventType.ADD, _WHIRLPOOL),
        PoolAction(disc.ORCA.ADD_LIQUIDITY2, PoolEventType.ADD, _WHIRLPOOL),
        PoolAction(disc.ORCA.REMOVE_LIQUIDITY, PoolEventType.REMOVE, _WHIRLPOOL),
    )


register_decoder("trade", [ORCA.id], OrcaDecoder)
register_decoder("liquidity", [ORCA.id], OrcaLiquidityDecoder)
