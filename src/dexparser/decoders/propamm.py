"""
Proprietary AMM decoders.

Prop AMMs quote from private state and publish no events, so swaps are read
from the transfers they cause. HumidiFi also obfuscates its payload; the
deobfuscated amount and direction cover swaps whose transfers are missing.
"""

import logging
from typing import List, Optional, Sequence

from ..constants import DEX_PROGRAMS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, DexInfo, TokenInfo, TradeInfo, TradeType
from ..utils.binary_cursor import cursor
from ..utils.trade import convert_to_ui_amount, deobfuscate, format_idx, get_account_trade_type
from .base import TradeDecoder, match_any_discriminator, register_decoder

logger = logging.getLogger(__name__)

MIN_SWAP_ACCOUNTS = 6
# header, amount in, direction flag
HUMIDIFI_MIN_PAYLOAD = 17
FALLBACK_DECIMALS = 9


class PropAmmDecoder(TradeDecoder):
    """Discriminator match, then a trade synthesized from the instruction's transfers."""

    program = None
    swap_discriminators: Sequence[bytes] = ()
    # account holding the pool, pair or market
    pool_index = 1

    def process_trades(self) -> List[TradeInfo]:
        trades = []
        swaps = {f"swap{i}": d for i, d in enumerate(self.swap_discriminators)}
        for ci in self.classified_instructions:
            if ci.program_id != self.program.id or not match_any_discriminator(ci.data, swaps):
                continue
            trade = self.parse_swap(ci)
            if trade is not None:
                trades.append(trade)
        return trades

    def swap_dex_info(self) -> DexInfo:
        return DexInfo(program_id=self.program.id, amm=self.program.name, route=self.dex_info.route)

    def parse_swap(self, ci: ClassifiedInstruction) -> Optional[TradeInfo]:
        if len(ci.accounts) < MIN_SWAP_ACCOUNTS:
            return None
        transfers = self.get_transfers_for_instruction(ci.program_id, ci.outer_index, ci.inner_index)
        if len(transfers) < 2:
            return None
        trade = self.utils.process_swap_data(transfers, self.swap_dex_info())
        if trade is None:
            return None
        trade.pool = [ci.accounts[self.pool_index]]
        trade.idx = format_idx(ci.outer_index, max(ci.inner_index, 0))
        return self.utils.attach_token_transfer_info(trade, self.transfer_actions)


class SolFiDecoder(PropAmmDecoder):
    program = DEX_PROGRAMS.SOLFI
    swap_discriminators = (disc.SOLFI.SWAP,)


class GoonFiDecoder(PropAmmDecoder):
    program = DEX_PROGRAMS.GOONFI
    swap_discriminators = (disc.GOONFI.SWAP,)


class ObricDecoder(PropAmmDecoder):
    program = DEX_PROGRAMS.OBRIC_V2
    swap_discriminators = disc.OBRIC.SWAPS


class HumidiFiDecoder(PropAmmDecoder):
    """
    HumidiFi swaps.

    The whole payload is XOR-obfuscated, so there is no discriminator to
    match. After deobfuscation it reads: 8-byte header, u64 amount in, u8
    direction (1 = base to quote). Accounts 4 and 5 are the user's base and
    quote token accounts.
    """

    program = DEX_PROGRAMS.HUMIDIFI

    def process_trades(self) -> List[TradeInfo]:
        trades = []
        for ci in self.classified_instructions:
            if ci.program_id != self.program.id or len(ci.data) < HUMIDIFI_MIN_PAYLOAD:
                continue
            trade = self.parse_swap(ci)
            if trade is not None:
                trades.append(trade)
        return trades

    def parse_swap(self, ci: ClassifiedInstruction) -> Optional[TradeInfo]:
        if len(ci.accounts) < MIN_SWAP_ACCOUNTS:
            return None
        transfers = self.get_transfers_for_instruction(ci.program_id, ci.outer_index, ci.inner_index)
        if len(transfers) >= 2:
            return super().parse_swap(ci)

        payload = deobfuscate(ci.data, disc.HUMIDIFI.XOR_KEY)
        with cursor(payload) as reader:
            reader.skip(8)
            amount_in = reader.read_u64()
            base_to_quote = reader.read_u8() == 1
            if reader.has_error:
                return None
        return self._trade_from_payload(ci, amount_in, base_to_quote)

    def _trade_from_payload(self, ci: ClassifiedInstruction, amount_in: int,
                            base_to_quote: bool) -> TradeInfo:
        accounts = ci.accounts
        user = accounts[0]
        base_account, quote_account = accounts[4], accounts[5]
        base_mint = self.adapter.get_spl_token_mint(base_account)
        quote_mint = self.adapter.get_spl_token_mint(quote_account)

        if base_to_quote:
            input_mint, output_mint = base_mint, quote_mint
            input_account, output_account = base_account, quote_account
        else:
            input_mint, output_mint = quote_mint, base_mint
            input_account, output_account = quote_account, base_account

        trade_type = TradeType.SWAP
        if base_mint:
            trade_type = get_account_trade_type(user, base_mint, input_account, output_account)

        input_decimals = self.adapter.get_token_decimals(input_mint) if input_mint else FALLBACK_DECIMALS
        output_decimals = self.adapter.get_token_decimals(output_mint) if output_mint else FALLBACK_DECIMALS
        logger.debug("HumidiFi swap at %s decoded from payload, amount in %s", ci.idx, amount_in)

        return TradeInfo(
            type=trade_type,
            pool=[accounts[self.pool_index]],
            input_token=TokenInfo(
                mint=input_mint,
                amount=convert_to_ui_amount(amount_in, input_decimals),
                amount_raw=str(amount_in),
                decimals=input_decimals,
                source=input_account,
            ),
            output_token=TokenInfo(mint=output_mint, decimals=output_decimals, destination=output_account),
            user=user,
            program_id=self.program.id,
            amm=self.program.name,
            route=self.dex_info.route,
            slot=self.adapter.slot,
            timestamp=self.adapter.block_time,
            signature=self.adapter.signature,
            idx=format_idx(ci.outer_index, max(ci.inner_index, 0)),
            signer=list(self.adapter.signers),
        )


for _decoder in (SolFiDecoder, GoonFiDecoder, ObricDecoder, HumidiFiDecoder):
    register_decoder("trade", [_decoder.program.id], _decoder)
