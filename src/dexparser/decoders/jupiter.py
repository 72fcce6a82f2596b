"""Jupiter aggregator decoder, driven by the router's per-hop swap events."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..constants import DEX_PROGRAMS, get_program_name
from ..constants import discriminators as disc
from ..models import ClassifiedInstruction, FeeInfo, TokenInfo, TradeInfo
from ..utils.binary_cursor import cursor
from ..utils.trade import convert_to_ui_amount, get_trade_type
from .base import TradeDecoder, match_discriminator, register_decoder

logger = logging.getLogger(__name__)

JUPITER = DEX_PROGRAMS.JUPITER
# DCA fills pay a 0.1% keeper fee out of the output
DCA_FEE_DIVISOR = 1000


@dataclass
class RouteEvent:
    """One hop: amm, input mint and amount, output mint and amount."""
    amm: str
    input_mint: str
    input_amount: int
    output_mint: str
    output_amount: int
    idx: str = ""


def decode_route_event(data: bytes) -> Optional[RouteEvent]:
    if not match_discriminator(data, disc.JUPITER.ROUTE_EVENT):
        return None
    with cursor(data[len(disc.JUPITER.ROUTE_EVENT):]) as reader:
        event = RouteEvent(
            amm=reader.read_pubkey(),
            input_mint=reader.read_pubkey(),
            input_amount=reader.read_u64(),
            output_mint=reader.read_pubkey(),
            output_amount=reader.read_u64(),
        )
        return None if reader.has_error else event


class JupiterDecoder(TradeDecoder):
    """
    Jupiter v6 routes.

    Every hop of a route logs a swap event. Hops under the same top-level
    instruction are merged into one trade: amounts are summed per mint and
    a mint that goes in and comes out in equal measure is an intermediate
    and is dropped. What remains must be a single input and a single output;
    otherwise each hop is reported on its own.
    """

    def process_trades(self) -> List[TradeInfo]:
        routes: Dict[int, List[RouteEvent]] = {}
        for ci in self.classified_instructions:
            event = self._route_event(ci)
            if event is not None:
                routes.setdefault(ci.outer_index, []).append(event)

        trades = []
        for outer_index in sorted(routes):
            events = routes[outer_index]
            merged = self._merge(events)
            if merged is not None:
                trades.append(merged)
                continue
            for event in events:
                trade = self._merge([event])
                if trade is not None:
                    trades.append(trade)
        return trades

    def _route_event(self, ci: ClassifiedInstruction) -> Optional[RouteEvent]:
        if ci.program_id != JUPITER.id:
            return None
        event = decode_route_event(ci.data)
        if event is None:
            return None
        event.idx = ci.idx
        return event

    def _merge(self, events: List[RouteEvent]) -> Optional[TradeInfo]:
        token_in: Dict[str, int] = {}
        token_out: Dict[str, int] = {}
        amms: List[str] = []
        for event in events:
            token_in[event.input_mint] = token_in.get(event.input_mint, 0) + event.input_amount
            token_out[event.output_mint] = token_out.get(event.output_mint, 0) + event.output_amount
            amm = get_program_name(event.amm) or event.amm
            if amm not in amms:
                amms.append(amm)

        for mint in list(token_in):
            if mint in token_out and token_in[mint] == token_out[mint]:
                del token_in[mint]
                del token_out[mint]

        if len(token_in) != 1 or len(token_out) != 1:
            return None

        in_mint, in_raw = next(iter(token_in.items()))
        out_mint, out_raw = next(iter(token_out.items()))
        in_decimals = self.adapter.get_token_decimals(in_mint)
        out_decimals = self.adapter.get_token_decimals(out_mint)

        trade = TradeInfo(
            type=get_trade_type(in_mint, out_mint),
            input_token=TokenInfo(mint=in_mint, amount=convert_to_ui_amount(in_raw, in_decimals),
                                  amount_raw=str(in_raw), decimals=in_decimals),
            output_token=TokenInfo(mint=out_mint, amount=convert_to_ui_amount(out_raw, out_decimals),
                                   amount_raw=str(out_raw), decimals=out_decimals),
            user=self.utils.get_swap_signer(),
            program_id=self.dex_info.program_id or JUPITER.id,
            amm=amms[0] if amms else self.dex_info.amm,
            amms=amms,
            route=self.dex_info.route or JUPITER.name,
            slot=self.adapter.slot,
            timestamp=self.adapter.block_time,
            signature=self.adapter.signature,
            idx=events[0].idx,
        )

        if DEX_PROGRAMS.JUPITER_DCA.id in self.adapter.account_keys:
            fee_raw = out_raw // DCA_FEE_DIVISOR
            trade.fee = FeeInfo(
                mint=out_mint,
                amount=convert_to_ui_amount(fee_raw, out_decimals),
                amount_raw=str(fee_raw),
                decimals=out_decimals,
            )
        return self.utils.attach_token_transfer_info(trade, self.transfer_actions)


register_decoder("trade", [JUPITER.id], JupiterDecoder)
