"""
Moonit bonding-curve decoders.

Curves are collateralized in SOL, USDC or USDT. Sells, and buys whose
instruction omits the amounts, are measured by the signer's balance
changes.
"""

import logging
from typing import Optional

from ..constants import DEX_PROGRAMS, TOKENS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, MemeEvent, TokenInfo, TradeType
from ..utils.binary_cursor import cursor
from ..utils.trade import convert_to_ui_amount
from .base import EventTradeDecoder, LaunchpadEventDecoder, register_decoder

logger = logging.getLogger(__name__)

MOONIT = DEX_PROGRAMS.MOONIT
MIN_TRADE_ACCOUNTS = 7
# buys carrying token and collateral amounts in their payload
MIN_SIZED_BUY_ACCOUNTS = 13
MIN_CREATE_ACCOUNTS = 4
MIN_MIGRATE_ACCOUNTS = 6
STABLE_COLLATERAL = (TOKENS.USDC, TOKENS.USDT)


class MoonitEventDecoder(LaunchpadEventDecoder):
    """Launches, curve trades and migrations."""

    program = MOONIT

    def decode_instruction(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        discriminator = ci.data[:8]
        if discriminator == disc.MOONIT.BUY:
            return self._decode_trade(ci, TradeType.BUY)
        if discriminator == disc.MOONIT.SELL:
            return self._decode_trade(ci, TradeType.SELL)
        if discriminator == disc.MOONIT.CREATE:
            return self._decode_create(ci)
        if discriminator == disc.MOONIT.MIGRATE:
            return self._decode_migrate(ci)
        return None

    def collateral_mint(self) -> str:
        for key in self.adapter.account_keys:
            if key in STABLE_COLLATERAL:
                return key
        return TOKENS.SOL

    def signer_change(self, mint: str) -> TokenInfo:
        """Absolute change of the signer's ``mint`` balance."""
        signer = self.adapter.signer
        if mint == TOKENS.SOL:
            change = self.adapter.sol_balance_changes().get(signer)
        else:
            change = self.adapter.token_balance_changes(by_owner=True).get(signer, {}).get(mint)
        raw = abs(int(change.change.amount)) if change is not None else 0
        decimals = self.adapter.get_token_decimals(mint)
        return TokenInfo(mint, convert_to_ui_amount(raw, decimals), str(raw), decimals)

    def _decode_trade(self, ci: ClassifiedInstruction, trade_type: TradeType) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_TRADE_ACCOUNTS:
            return None
        base_mint = accounts[6]
        event = MemeEvent(
            type=trade_type,
            user=accounts[0],
            base_mint=base_mint,
            bonding_curve=accounts[2],
            pool=accounts[2],
        )

        if trade_type == TradeType.BUY and len(accounts) >= MIN_SIZED_BUY_ACCOUNTS:
            with cursor(ci.data[8:]) as reader:
                token_amount = reader.read_u64()
                collateral_amount = reader.read_u64()
                if reader.has_error:
                    return None
            token_decimals = self.adapter.get_token_decimals(base_mint)
            sol_decimals = self.adapter.get_token_decimals(TOKENS.SOL)
            event.quote_mint = TOKENS.SOL
            event.input_token = TokenInfo(TOKENS.SOL, convert_to_ui_amount(collateral_amount, sol_decimals),
                                          str(collateral_amount), sol_decimals)
            event.output_token = TokenInfo(base_mint, convert_to_ui_amount(token_amount, token_decimals),
                                           str(token_amount), token_decimals)
            return event

        collateral = self.collateral_mint()
        token = self.signer_change(base_mint)
        quote = self.signer_change(collateral)
        event.quote_mint = collateral
        if trade_type == TradeType.BUY:
            event.input_token, event.output_token = quote, token
        else:
            event.input_token, event.output_token = token, quote
        return event

    def _decode_create(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_CREATE_ACCOUNTS:
            return None
        with cursor(ci.data[8:]) as reader:
            name = reader.read_string()
            symbol = reader.read_string()
            uri = reader.read_string()
            decimals = reader.read_u8()
            reader.skip(1)  # collateral currency
            total_supply = reader.read_u64()
            if reader.has_error:
                return None
        return MemeEvent(
            type=TradeType.CREATE,
            user=accounts[0],
            creator=accounts[0],
            base_mint=accounts[3],
            quote_mint=TOKENS.SOL,
            name=name,
            symbol=symbol,
            uri=uri,
            decimals=decimals,
            total_supply=convert_to_ui_amount(total_supply, decimals),
            bonding_curve=accounts[2],
            pool=accounts[2],
        )

    def _decode_migrate(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < MIN_MIGRATE_ACCOUNTS:
            logger.debug("Moonit migration at %s has %d accounts", ci.idx, len(accounts))
            return None
        return MemeEvent(
            type=TradeType.MIGRATE,
            base_mint=accounts[5],
            quote_mint=TOKENS.SOL,
            bonding_curve=accounts[2],
        )


class MoonitDecoder(EventTradeDecoder):
    program = MOONIT
    event_decoder = MoonitEventDecoder


register_decoder("trade", [MOONIT.id], MoonitDecoder)
register_decoder("meme", [MOONIT.id], MoonitEventDecoder)
