"""
Boop.fun bonding-curve decoders.

Buy and sell instructions carry only the amount the user fixed; the other
leg is the matching transfer under the instruction.
"""

import logging
from typing import List, Optional

from ..constants import DEX_PROGRAMS, TOKENS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, MemeEvent, TokenInfo, TradeType, TransferData
from ..utils.binary_cursor import cursor
from ..utils.trade import convert_to_ui_amount
from .base import EventTradeDecoder, LaunchpadEventDecoder, register_decoder

logger = logging.getLogger(__name__)

BOOPFUN = DEX_PROGRAMS.BOOP_FUN
TOKEN_DECIMALS = 6
SOL_DECIMALS = 9
MIN_TRADE_ACCOUNTS = 7
MIN_CREATE_ACCOUNTS = 4
MIN_COMPLETE_ACCOUNTS = 11


def _transfer_amount(transfers: List[TransferData], mint: str) -> int:
    for transfer in transfers:
        if transfer.info.mint == mint:
            return int(transfer.info.token_amount.amount or 0)
    return 0


def _token(mint: str, raw: int, decimals: int) -> TokenInfo:
    return TokenInfo(mint, convert_to_ui_amount(raw, decimals), str(raw), decimals)


class BoopfunEventDecoder(LaunchpadEventDecoder):
    """Token creation, curve trades and curve completion."""

    program = BOOPFUN

    def decode_instruction(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        discriminator = ci.data[:8]
        if discriminator == disc.BOOPFUN.BUY:
            return self._decode_trade(ci, is_buy=True)
        if discriminator == disc.BOOPFUN.SELL:
            return self._decode_trade(ci, is_buy=False)
        if discriminator == disc.BOOPFUN.CREATE:
            return self._decode_create(ci)
        if discriminator == disc.BOOPFUN.COMPLETE:
            return self._decode_complete(ci)
        return None

    def _decode_trade(self, ci: ClassifiedInstruction, is_buy: bool) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_TRADE_ACCOUNTS:
            return None
        with cursor(ci.data[8:]) as reader:
            amount = reader.read_u64()
            if reader.has_error:
                return None

        mint = accounts[0]
        transfers = self.get_transfers_for_instruction(ci.program_id, ci.outer_index, ci.inner_index)
        if is_buy:
            sol = _token(TOKENS.SOL, amount, SOL_DECIMALS)
            token = _token(mint, _transfer_amount(transfers, mint), TOKEN_DECIMALS)
        else:
            token = _token(mint, amount, TOKEN_DECIMALS)
            sol = _token(TOKENS.SOL, _transfer_amount(transfers, TOKENS.SOL), SOL_DECIMALS)
        if not transfers:
            logger.debug("Boop.fun trade at %s has no transfers", ci.idx)

        return MemeEvent(
            type=TradeType.BUY if is_buy else TradeType.SELL,
            user=accounts[6],
            base_mint=mint,
            quote_mint=TOKENS.SOL,
            input_token=sol if is_buy else token,
            output_token=token if is_buy else sol,
            bonding_curve=accounts[1],
        )

    def _decode_create(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_CREATE_ACCOUNTS:
            return None
        with cursor(ci.data[8:]) as reader:
            reader.skip(8)  # salt
            name = reader.read_string()
            symbol = reader.read_string()
            uri = reader.read_string()
            if reader.has_error:
                return None
        return MemeEvent(
            type=TradeType.CREATE,
            user=accounts[3],
            creator=accounts[3],
            base_mint=accounts[2],
            quote_mint=TOKENS.SOL,
            name=name,
            symbol=symbol,
            uri=uri,
        )

    def _decode_complete(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_COMPLETE_ACCOUNTS:
            return None
        return MemeEvent(
            type=TradeType.COMPLETE,
            user=accounts[10],
            base_mint=accounts[0],
            quote_mint=TOKENS.SOL,
            bonding_curve=accounts[7],
        )


class BoopfunDecoder(EventTradeDecoder):
    program = BOOPFUN
    event_decoder = BoopfunEventDecoder


register_decoder("trade", [BOOPFUN.id], BoopfunDecoder)
register_decoder("meme", [BOOPFUN.id], BoopfunEventDecoder)
