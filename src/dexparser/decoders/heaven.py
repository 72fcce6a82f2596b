"""Heaven launchpad decoders: curve buys, sells and the pool-creating initial buy."""

from typing import Optional

from ..constants import DEX_PROGRAMS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, DexInfo, MemeEvent, TokenInfo, TradeType
from ..utils.binary_cursor import cursor
from ..utils.trade import convert_to_ui_amount
from .base import EventTradeDecoder, LaunchpadEventDecoder, register_decoder

HEAVEN = DEX_PROGRAMS.HEAVEN
TOKEN_DECIMALS = 6
QUOTE_DECIMALS = 9
MIN_TRADE_ACCOUNTS = 7
MIN_CREATE_POOL_ACCOUNTS = 12


class HeavenEventDecoder(LaunchpadEventDecoder):
    program = HEAVEN

    def decode_instruction(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        discriminator = ci.data[:8]
        if discriminator == disc.HEAVEN.BUY:
            return self._decode_trade(ci, is_buy=True)
        if discriminator == disc.HEAVEN.SELL:
            return self._decode_trade(ci, is_buy=False)
        if discriminator == disc.HEAVEN.CREATE_POOL:
            return self._decode_initial_buy(ci)
        return None

    def _decode_trade(self, ci: ClassifiedInstruction, is_buy: bool) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_TRADE_ACCOUNTS:
            return None
        with cursor(ci.data[8:]) as reader:
            first = reader.read_u64()
            second = reader.read_u64()
            if reader.has_error:
                return None
        # buys name the quote amount first, sells the token amount
        quote_amount, token_amount = (first, second) if is_buy else (second, first)

        base_mint, quote_mint = accounts[4], accounts[5]
        token = TokenInfo(base_mint, convert_to_ui_amount(token_amount, TOKEN_DECIMALS),
                          str(token_amount), TOKEN_DECIMALS)
        quote = TokenInfo(quote_mint, convert_to_ui_amount(quote_amount, QUOTE_DECIMALS),
                          str(quote_amount), QUOTE_DECIMALS)
        return MemeEvent(
            type=TradeType.BUY if is_buy else TradeType.SELL,
            user=accounts[3],
            base_mint=base_mint,
            quote_mint=quote_mint,
            input_token=quote if is_buy else token,
            output_token=token if is_buy else quote,
            bonding_curve=accounts[6],
            pool=accounts[6],
        )

    def _decode_initial_buy(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_CREATE_POOL_ACCOUNTS:
            return None
        event = MemeEvent(
            type=TradeType.BUY,
            user=accounts[4],
            base_mint=accounts[5],
            quote_mint=accounts[6],
            bonding_curve=accounts[10],
            pool=accounts[10],
            platform_config=accounts[11],
        )
        transfers = self.get_transfers_for_instruction(ci.program_id, ci.outer_index, ci.inner_index)
        if len(transfers) >= 2:
            trade = self.utils.process_swap_data(transfers[:2], DexInfo())
            if trade is not None:
                event.input_token = trade.input_token
                event.output_token = trade.output_token
        return event


class HeavenDecoder(EventTradeDecoder):
    program = HEAVEN
    event_decoder = HeavenEventDecoder


register_decoder("trade", [HEAVEN.id], HeavenDecoder)
register_decoder("meme", [HEAVEN.id], HeavenEventDecoder)
