"""
Raydium Launchpad (LaunchLab) decoders.

Buys and sells are instructions whose trade event is logged by the next
inner instruction. Pool creation is a self-CPI event; migrations are read
from the migrate instruction's accounts.
"""

import logging
from typing import Optional

from ..constants import DEX_PROGRAMS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, FeeInfo, MemeEvent, TokenInfo, TradeInfo, TradeType
from ..utils.binary_cursor import cursor
from ..utils.trade import convert_to_ui_amount
from .base import EventTradeDecoder, LaunchpadEventDecoder, match_discriminator, register_decoder

logger = logging.getLogger(__name__)

LAUNCHPAD = DEX_PROGRAMS.RAYDIUM_LCP
QUOTE_DECIMALS = 9
BASE_DECIMALS = 6
# v1 trade events end after the share fee; v2 adds the creator fee
TRADE_EVENT_V1_SIZE = 130
DIRECTION_BUY = 0
MIN_TRADE_ACCOUNTS = 11
MIN_CREATE_ACCOUNTS = 8
MIN_MIGRATE_AMM_ACCOUNTS = 17
MIN_MIGRATE_CPSWAP_ACCOUNTS = 8


class RaydiumLaunchpadEventDecoder(LaunchpadEventDecoder):
    """Launches, bonding-curve trades and migrations to Raydium AMM v4 or CPMM."""

    program = LAUNCHPAD

    def decode_instruction(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        data = ci.data
        if any(match_discriminator(data, d) for d in disc.RAYDIUM_LCP.TRADES):
            return self._decode_trade(ci)
        if match_discriminator(data, disc.RAYDIUM_LCP.CREATE_EVENT):
            return self._decode_create(ci)
        if match_discriminator(data, disc.RAYDIUM_LCP.MIGRATE_TO_AMM):
            return self._decode_migrate(ci, MIN_MIGRATE_AMM_ACCOUNTS, 13, DEX_PROGRAMS.RAYDIUM_V4.name)
        if match_discriminator(data, disc.RAYDIUM_LCP.MIGRATE_TO_CPSWAP):
            return self._decode_migrate(ci, MIN_MIGRATE_CPSWAP_ACCOUNTS, 5, DEX_PROGRAMS.RAYDIUM_CPMM.name)
        return None

    def _decode_trade(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        event_ix = self.adapter.get_inner_instruction(ci.outer_index, max(ci.inner_index, 0) + 1)
        if event_ix is None or not match_discriminator(event_ix.data, disc.RAYDIUM_LCP.TRADE_EVENT):
            logger.debug("Raydium Launchpad trade at %s has no trade event", ci.idx)
            return None
        accounts = ci.accounts
        if len(accounts) < MIN_TRADE_ACCOUNTS:
            return None

        payload = event_ix.data[len(disc.RAYDIUM_LCP.TRADE_EVENT):]
        creator_fee = 0
        with cursor(payload) as reader:
            pool_state = reader.read_pubkey()
            if len(payload) > TRADE_EVENT_V1_SIZE:
                reader.skip(56)  # supply, virtual and real reserves
                amount_in = reader.read_u64()
                amount_out = reader.read_u64()
                protocol_fee = reader.read_u64()
                platform_fee = reader.read_u64()
                creator_fee = reader.read_u64()
                share_fee = reader.read_u64()
                direction = reader.read_u8()
                reader.skip(1)  # pool status
            else:
                direction = reader.read_u8()
                reader.skip(1)
                reader.skip(56)
                amount_in = reader.read_u64()
                amount_out = reader.read_u64()
                protocol_fee = reader.read_u64()
                platform_fee = reader.read_u64()
                share_fee = reader.read_u64()
            if reader.has_error:
                return None

        user, base_mint, quote_mint = accounts[0], accounts[9], accounts[10]
        quote = TokenInfo(quote_mint, decimals=QUOTE_DECIMALS)
        base = TokenInfo(base_mint, decimals=BASE_DECIMALS)
        is_buy = direction == DIRECTION_BUY
        input_token, output_token = (quote, base) if is_buy else (base, quote)
        for token, raw in ((input_token, amount_in), (output_token, amount_out)):
            token.amount_raw = str(raw)
            token.amount = convert_to_ui_amount(raw, token.decimals)

        return MemeEvent(
            type=TradeType.BUY if is_buy else TradeType.SELL,
            user=user,
            base_mint=base_mint,
            quote_mint=quote_mint,
            input_token=input_token,
            output_token=output_token,
            bonding_curve=pool_state,
            protocol_fee=convert_to_ui_amount(protocol_fee, QUOTE_DECIMALS),
            platform_fee=convert_to_ui_amount(platform_fee, QUOTE_DECIMALS),
            share_fee=convert_to_ui_amount(share_fee, QUOTE_DECIMALS),
            creator_fee=convert_to_ui_amount(creator_fee, QUOTE_DECIMALS),
        )

    def _decode_create(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        with cursor(ci.data[len(disc.RAYDIUM_LCP.CREATE_EVENT):]) as reader:
            pool_state = reader.read_pubkey()
            creator = reader.read_pubkey()
            config = reader.read_pubkey()
            decimals = reader.read_u8()
            name = reader.read_string()
            symbol = reader.read_string()
            uri = reader.read_string()
            if reader.has_error:
                return None

        # the mints are accounts of the initialize instruction that logged the event
        outer = self.adapter.get_instruction(ci.outer_index)
        if outer is None or len(outer.accounts) < MIN_CREATE_ACCOUNTS:
            return None
        return MemeEvent(
            type=TradeType.CREATE,
            user=creator,
            creator=creator,
            base_mint=outer.accounts[6],
            quote_mint=outer.accounts[7],
            name=name,
            symbol=symbol,
            uri=uri,
            decimals=decimals,
            bonding_curve=pool_state,
            platform_config=config,
        )

    def _decode_migrate(self, ci: ClassifiedInstruction, min_accounts: int, pool_index: int,
                        pool_dex: str) -> Optional[MemeEvent]:
        accounts = ci.accounts
        if len(accounts) < min_accounts:
            return None
        return MemeEvent(
            type=TradeType.MIGRATE,
            base_mint=accounts[1],
            quote_mint=accounts[2],
            pool=accounts[pool_index],
            pool_dex=pool_dex,
        )


class RaydiumLaunchpadDecoder(EventTradeDecoder):
    """Bonding-curve trades; the fee is the sum of protocol, platform and creator fees."""

    program = LAUNCHPAD
    event_decoder = RaydiumLaunchpadEventDecoder

    def build_trade(self, event: MemeEvent) -> TradeInfo:
        trade = super().build_trade(event)
        trade.amm = LAUNCHPAD.name
        fee_token = event.input_token if event.type == TradeType.BUY else event.output_token
        total = (event.protocol_fee or 0) + (event.platform_fee or 0) + (event.creator_fee or 0)
        trade.fee = FeeInfo(
            mint=fee_token.mint,
            amount=total,
            amount_raw=str(round(total * 10 ** fee_token.decimals)),
            decimals=fee_token.decimals,
            dex=LAUNCHPAD.name,
        )
        return trade


register_decoder("trade", [LAUNCHPAD.id], RaydiumLaunchpadDecoder)
register_decoder("meme", [LAUNCHPAD.id], RaydiumLaunchpadEventDecoder)
