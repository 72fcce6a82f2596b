"""
Jupiter order programs: DCA, value averaging and limit orders v2.

A keeper or taker fills an order through a routed swap, and the order
program logs one fill event per fill. The event carries the amounts; the
swap hops under it name the AMM.
"""

import logging
from abc import abstractmethod
from typing import List, Optional

from ..constants import DEX_PROGRAMS
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, FeeInfo, TokenInfo, TradeInfo
from ..utils.binary_cursor import BinaryCursor, cursor
from ..utils.trade import convert_to_ui_amount, format_idx, get_amms, get_trade_type
from .base import TradeDecoder, match_discriminator, register_decoder

logger = logging.getLogger(__name__)

# limit order takers pay 0.1% of the taking amount
LIMIT_FEE_DIVISOR = 1000
# trailing u64 fields of a value-average fill: new totals and the next schedule
VA_FILL_TAIL = 48


class JupiterOrderDecoder(TradeDecoder):
    """One trade per fill event of ``program``."""

    program = None
    fill_event = b""

    @abstractmethod
    def decode_fill(self, ci: ClassifiedInstruction, reader: BinaryCursor) -> Optional[TradeInfo]:
        pass

    def process_trades(self) -> List[TradeInfo]:
        trades = []
        for ci in self.classified_instructions:
            if ci.program_id != self.program.id or not match_discriminator(ci.data, self.fill_event):
                continue
            with cursor(ci.data[len(self.fill_event):]) as reader:
                trade = self.decode_fill(ci, reader)
            if trade is None:
                logger.debug("Skipping unreadable %s fill at %s", self.program.name, ci.idx)
                continue
            trade.program_id = self.program.id
            trade.amm = self._amm()
            trade.route = self.dex_info.route or self.program.name
            trade.slot = self.adapter.slot
            trade.timestamp = self.adapter.block_time
            trade.signature = self.adapter.signature
            trade.signer = list(self.adapter.signers)
            trade.idx = format_idx(ci.outer_index, max(ci.inner_index, 0))
            trades.append(self.utils.attach_token_transfer_info(trade, self.transfer_actions))
        return trades

    def _amm(self) -> str:
        amms = get_amms(self.transfer_actions.keys())
        if amms:
            return amms[0]
        return self.dex_info.amm or self.program.name

    def token(self, mint: str, raw: int) -> TokenInfo:
        decimals = self.adapter.get_token_decimals(mint)
        return TokenInfo(mint=mint, amount=convert_to_ui_amount(raw, decimals),
                         amount_raw=str(raw), decimals=decimals)

    def fee(self, mint: str, raw: int) -> FeeInfo:
        decimals = self.adapter.get_token_decimals(mint)
        return FeeInfo(mint=mint, amount=convert_to_ui_amount(raw, decimals),
                       amount_raw=str(raw), decimals=decimals, dex=self.program.name)


class JupiterDcaDecoder(JupiterOrderDecoder):
    """
    DCA fills.

    Event: user, dca account, input mint, output mint, u64 in, u64 out,
    fee mint, u64 fee.
    """

    program = DEX_PROGRAMS.JUPITER_DCA
    fill_event = disc.JUPITER_DCA.FILLED

    def decode_fill(self, ci: ClassifiedInstruction, reader: BinaryCursor) -> Optional[TradeInfo]:
        user = reader.read_pubkey()
        reader.skip(32)
        input_mint = reader.read_pubkey()
        output_mint = reader.read_pubkey()
        in_amount = reader.read_u64()
        out_amount = reader.read_u64()
        fee_mint = reader.read_pubkey()
        fee = reader.read_u64()
        if reader.has_error:
            return None
        return TradeInfo(
            type=get_trade_type(input_mint, output_mint),
            input_token=self.token(input_mint, in_amount),
            output_token=self.token(output_mint, out_amount),
            user=user,
            fee=self.fee(fee_mint, fee),
        )


class JupiterVaDecoder(JupiterOrderDecoder):
    """
    Value-average fills.

    Event: value average account, user, keeper, input mint, output mint,
    u64 in, u64 out, u64 fee (in the output mint), then six u64 totals.
    """

    program = DEX_PROGRAMS.JUPITER_VA
    fill_event = disc.JUPITER_VA.FILL_EVENT

    def decode_fill(self, ci: ClassifiedInstruction, reader: BinaryCursor) -> Optional[TradeInfo]:
        reader.skip(32)
        user = reader.read_pubkey()
        reader.skip(32)
        input_mint = reader.read_pubkey()
        output_mint = reader.read_pubkey()
        in_amount = reader.read_u64()
        out_amount = reader.read_u64()
        fee = reader.read_u64()
        reader.skip(VA_FILL_TAIL)
        if reader.has_error:
            return None
        return TradeInfo(
            type=get_trade_type(input_mint, output_mint),
            input_token=self.token(input_mint, in_amount),
            output_token=self.token(output_mint, out_amount),
            user=user,
            fee=self.fee(output_mint, fee),
        )


class JupiterLimitOrderV2Decoder(JupiterOrderDecoder):
    """
    Limit order v2 fills.

    The trade event names the taker and the filled amounts but not the
    mints; those come from the token accounts of the fill instruction.
    """

    program = DEX_PROGRAMS.JUPITER_LIMIT_ORDER_V2
    fill_event = disc.JUPITER_LIMIT_ORDER_V2.TRADE_EVENT

    def decode_fill(self, ci: ClassifiedInstruction, reader: BinaryCursor) -> Optional[TradeInfo]:
        reader.skip(32)
        taker = reader.read_pubkey()
        # remaining making and taking amounts
        reader.skip(16)
        making = reader.read_u64()
        taking = reader.read_u64()
        if reader.has_error:
            return None

        input_mint, output_mint = self._mints(ci.outer_index)
        if not input_mint or not output_mint:
            return None

        fee = taking // LIMIT_FEE_DIVISOR
        return TradeInfo(
            type=get_trade_type(input_mint, output_mint),
            input_token=self.token(input_mint, making),
            output_token=self.token(output_mint, taking - fee),
            user=taker,
            fee=self.fee(output_mint, fee),
        )

    def _mints(self, outer_index: int):
        instruction = self.adapter.get_instruction(outer_index)
        if instruction is None:
            return "", ""
        accounts = instruction.accounts
        if match_discriminator(instruction.data, disc.JUPITER_LIMIT_ORDER_V2.UNKNOWN):
            if len(accounts) > 4:
                return (self.adapter.get_spl_token_mint(accounts[3]),
                        self.adapter.get_spl_token_mint(accounts[4]))
        elif len(accounts) > 8:
            return self.adapter.get_spl_token_mint(accounts[3]), accounts[8]
        return "", ""


register_decoder("trade", [DEX_PROGRAMS.JUPITER_DCA.id], JupiterDcaDecoder)
register_decoder("trade", [DEX_PROGRAMS.JUPITER_VA.id], JupiterVaDecoder)
register_decoder("trade", [DEX_PROGRAMS.JUPITER_LIMIT_ORDER_V2.id], JupiterLimitOrderV2Decoder)
