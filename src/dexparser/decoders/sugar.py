"""Sugar bonding-curve decoders."""

from typing import Optional

from ..constants import DEX_PROGRAMS, TOKENS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, MemeEvent, TokenInfo, TradeType
from ..utils.binary_cursor import cursor
from ..utils.trade import convert_to_ui_amount
from .base import EventTradeDecoder, LaunchpadEventDecoder, register_decoder

SUGAR = DEX_PROGRAMS.SUGAR
TOKEN_DECIMALS = 6
QUOTE_DECIMALS = 9
MIN_ACCOUNTS = 8


class SugarEventDecoder(LaunchpadEventDecoder):
    """
    Launches and curve trades.

    Every buy and sell variant carries ``u64 amount in, u64 amount out``;
    accounts 6 and 7 are the token and quote mints.
    """

    program = SUGAR

    def decode_instruction(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        if len(ci.accounts) < MIN_ACCOUNTS:
            return None
        discriminator = ci.data[:8]
        if discriminator in disc.SUGAR.BUYS:
            return self._decode_trade(ci, is_buy=True)
        if discriminator in disc.SUGAR.SELLS:
            return self._decode_trade(ci, is_buy=False)
        if discriminator == disc.SUGAR.CREATE:
            return self._decode_create(ci)
        return None

    def _decode_trade(self, ci: ClassifiedInstruction, is_buy: bool) -> Optional[MemeEvent]:
        with cursor(ci.data[8:]) as reader:
            amount_in = reader.read_u64()
            amount_out = reader.read_u64()
            if reader.has_error:
                return None

        accounts = ci.accounts
        base_mint, quote_mint = accounts[6], accounts[7]
        if is_buy:
            input_token = TokenInfo(quote_mint, convert_to_ui_amount(amount_in, QUOTE_DECIMALS),
                                    str(amount_in), QUOTE_DECIMALS)
            output_token = TokenInfo(base_mint, convert_to_ui_amount(amount_out, TOKEN_DECIMALS),
                                     str(amount_out), TOKEN_DECIMALS)
        else:
            input_token = TokenInfo(base_mint, convert_to_ui_amount(amount_in, TOKEN_DECIMALS),
                                    str(amount_in), TOKEN_DECIMALS)
            output_token = TokenInfo(quote_mint, convert_to_ui_amount(amount_out, QUOTE_DECIMALS),
                                     str(amount_out), QUOTE_DECIMALS)
        return MemeEvent(
            type=TradeType.BUY if is_buy else TradeType.SELL,
            user=accounts[0],
            base_mint=base_mint,
            quote_mint=quote_mint,
            input_token=input_token,
            output_token=output_token,
            bonding_curve=accounts[1],
            pool=accounts[1],
        )

    def _decode_create(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        with cursor(ci.data[8:]) as reader:
            name = reader.read_string()
            symbol = reader.read_string()
            uri = reader.read_string()
            if reader.has_error:
                return None
        accounts = ci.accounts
        return MemeEvent(
            type=TradeType.CREATE,
            user=accounts[0],
            creator=accounts[0],
            base_mint=accounts[6],
            quote_mint=TOKENS.SOL,
            name=name,
            symbol=symbol,
            uri=uri,
            bonding_curve=accounts[1],
        )


class SugarDecoder(EventTradeDecoder):
    program = SUGAR
    event_decoder = SugarEventDecoder


register_decoder("trade", [SUGAR.id], SugarDecoder)
register_decoder("meme", [SUGAR.id], SugarEventDecoder)
