"""Meteora Dynamic Bonding Curve decoders, read from the program's instructions."""

import logging
from typing import Optional

from ..constants import DEX_PROGRAMS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, DexInfo, MemeEvent, TokenInfo, TradeType
from ..utils.binary_cursor import cursor
from ..utils.trade import convert_to_ui_amount, get_account_trade_type
from .base import EventTradeDecoder, LaunchpadEventDecoder, match_any_discriminator, register_decoder

logger = logging.getLogger(__name__)

DBC = DEX_PROGRAMS.METEORA_DBC
MIN_SWAP_ACCOUNTS = 10
MIN_CREATE_ACCOUNTS = 10
MIN_MIGRATE_DAMM_ACCOUNTS = 9
MIN_MIGRATE_DAMM_V2_ACCOUNTS = 15

_SWAPS = {"swap": disc.METEORA_DBC.SWAP, "swap_v2": disc.METEORA_DBC.SWAP_V2}
_CREATES = {
    "spl": disc.METEORA_DBC.INITIALIZE_VIRTUAL_POOL_WITH_SPL,
    "token2022": disc.METEORA_DBC.INITIALIZE_VIRTUAL_POOL_WITH_TOKEN2022,
}


class MeteoraDbcEventDecoder(LaunchpadEventDecoder):
    """Virtual pool launches, curve swaps and migrations to DAMM v1 or v2."""

    program = DBC

    def decode_instruction(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        data = ci.data
        if match_any_discriminator(data, _SWAPS):
            return self._decode_swap(ci)
        if match_any_discriminator(data, _CREATES):
            return self._decode_create(ci)
        if data[:8] == disc.METEORA_DBC.MIGRATE_DAMM:
            return self._decode_migrate(ci, MIN_MIGRATE_DAMM_ACCOUNTS, 7, DEX_PROGRAMS.METEORA_DAMM.name)
        if data[:8] == disc.METEORA_DBC.MIGRATE_DAMM_V2:
            return self._decode_migrate(ci, MIN_MIGRATE_DAMM_V2_ACCOUNTS, 13, DEX_PROGRAMS.METEORA_DAMM_V2.name)
        return None

    def _decode_swap(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_SWAP_ACCOUNTS:
            return None
        with cursor(ci.data[8:]) as reader:
            amount_in = reader.read_u64()
            amount_out = reader.read_u64()
            if reader.has_error:
                return None

        base_mint, quote_mint = accounts[7], accounts[8]
        trade_type = get_account_trade_type(self.adapter.signer, base_mint, accounts[3], accounts[4])
        if trade_type == TradeType.SWAP:
            trade_type = TradeType.BUY
        input_mint, output_mint = (base_mint, quote_mint) if trade_type == TradeType.SELL else (quote_mint, base_mint)

        event = MemeEvent(
            type=trade_type,
            user=accounts[9],
            base_mint=base_mint,
            quote_mint=quote_mint,
            input_token=self._token(input_mint, amount_in),
            output_token=self._token(output_mint, amount_out),
            bonding_curve=accounts[2],
            pool=accounts[2],
        )

        # settled amounts override the instruction's limits
        transfers = self.get_transfers_for_instruction(ci.program_id, ci.outer_index, ci.inner_index)
        if len(transfers) >= 2:
            trade = self.utils.process_swap_data(transfers[:2], DexInfo())
            if trade is not None:
                event.input_token = trade.input_token
                event.output_token = trade.output_token
        return event

    def _token(self, mint: str, raw: int) -> TokenInfo:
        decimals = self.adapter.get_token_decimals(mint)
        return TokenInfo(mint, convert_to_ui_amount(raw, decimals), str(raw), decimals)

    def _decode_create(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_CREATE_ACCOUNTS:
            return None
        with cursor(ci.data[8:]) as reader:
            name = reader.read_string()
            symbol = reader.read_string()
            uri = reader.read_string()
            if reader.has_error:
                return None
        return MemeEvent(
            type=TradeType.CREATE,
            name=name,
            symbol=symbol,
            uri=uri,
            user=accounts[2],
            base_mint=accounts[3],
            quote_mint=accounts[4],
            pool=accounts[5],
            bonding_curve=accounts[5],
            platform_config=accounts[0],
        )

    def _decode_migrate(self, ci: ClassifiedInstruction, min_accounts: int, base_index: int,
                        pool_dex: str) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < min_accounts:
            logger.debug("Meteora DBC migration at %s has %d accounts", ci.idx, len(accounts))
            return None
        return MemeEvent(
            type=TradeType.MIGRATE,
            base_mint=accounts[base_index],
            quote_mint=accounts[base_index + 1],
            platform_config=accounts[2],
            bonding_curve=accounts[0],
            pool=accounts[4],
            pool_dex=pool_dex,
        )


class MeteoraDbcDecoder(EventTradeDecoder):
    """Curve swaps as trades."""

    program = DBC
    event_decoder = MeteoraDbcEventDecoder


register_decoder("trade", [DBC.id], MeteoraDbcDecoder)
register_decoder("meme", [DBC.id], MeteoraDbcEventDecoder)
