"""Base protocol decoder and the program-id keyed decoder registry."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Mapping, Optional, Type

from ..core.adapter import TransactionAdapter
from ..core.swap import TransactionUtils, TransferActions
from ..models import (
    ClassifiedInstruction,
    DexInfo,
    ExtraAction,
    MemeEvent,
    PoolEvent,
    TradeInfo,
    TradeType,
    TransferData,
)
from ..utils.trade import format_idx, parse_idx

logger = logging.getLogger(__name__)


def match_discriminator(data: bytes, discriminator: bytes) -> bool:
    return len(data) >= len(discriminator) and data[:len(discriminator)] == discriminator


def match_any_discriminator(data: bytes, discriminators: Mapping[str, bytes]) -> Optional[str]:
    """Name of the first discriminator ``data`` starts with."""
    for name, disc in discriminators.items():
        if match_discriminator(data, disc):
            return name
    return None


class BaseDecoder(ABC):
    """
    State shared by every protocol decoder.

    ``classified_instructions`` holds only the instructions of the programs
    the decoder was selected for.
    """

    def __init__(self, adapter: TransactionAdapter, dex_info: DexInfo,
                 transfer_actions: TransferActions,
                 classified_instructions: List[ClassifiedInstruction],
                 utils: Optional[TransactionUtils] = None):
        self.adapter = adapter
        self.dex_info = dex_info
        self.transfer_actions = transfer_actions
        self.classified_instructions = classified_instructions
        self.utils = utils or TransactionUtils(adapter)

    def get_transfers_for_instruction(self, program_id: str, outer_index: int, inner_index: int = -1,
                                      extra: ExtraAction = ExtraAction.NONE) -> List[TransferData]:
        return self.utils.get_transfers_for_instruction(
            self.transfer_actions, program_id, outer_index, inner_index, extra
        )


class TradeDecoder(BaseDecoder):

    @abstractmethod
    def process_trades(self) -> List[TradeInfo]:
        pass


class LiquidityDecoder(BaseDecoder):

    @abstractmethod
    def process_liquidity(self) -> List[PoolEvent]:
        pass


class MemeDecoder(BaseDecoder):

    @abstractmethod
    def process_events(self) -> List[MemeEvent]:
        pass


class LaunchpadEventDecoder(MemeDecoder):
    """
    Meme events read from a launchpad's own instructions.

    Subclasses decode one instruction at a time; stamping, ordering and the
    program filter are shared.
    """

    program = None

    @abstractmethod
    def decode_instruction(self, ci: ClassifiedInstruction) -> Optional[MemeEvent]:
        pass

    def parse_instructions(self, instructions: Iterable[ClassifiedInstruction]) -> List[MemeEvent]:
        events: List[MemeEvent] = []
        for ci in instructions:
            if ci.program_id != self.program.id or len(ci.data) < 8:
                continue
            event = self.decode_instruction(ci)
            if event is None:
                continue
            event.protocol = event.protocol or self.program.name
            event.signature = self.adapter.signature
            event.slot = self.adapter.slot
            event.timestamp = self.adapter.block_time or event.timestamp
            event.idx = format_idx(ci.outer_index, max(ci.inner_index, 0))
            events.append(event)
        events.sort(key=lambda e: parse_idx(e.idx))
        return events

    def process_events(self) -> List[MemeEvent]:
        return self.parse_instructions(self.classified_instructions)


class EventTradeDecoder(TradeDecoder):
    """Trades lifted from the buy and sell events of a meme decoder."""

    program = None
    event_decoder: Type[MemeDecoder] = None

    def process_events(self) -> List[MemeEvent]:
        return self.event_decoder(
            self.adapter, self.dex_info, self.transfer_actions, self.classified_instructions, self.utils
        ).process_events()

    def process_trades(self) -> List[TradeInfo]:
        trades = []
        for event in self.process_events():
            if event.type not in (TradeType.BUY, TradeType.SELL, TradeType.SWAP):
                continue
            if event.input_token is None or event.output_token is None:
                logger.debug("Trade event at %s has no token legs", event.idx)
                continue
            trade = self.build_trade(event)
            trades.append(self.utils.attach_token_transfer_info(trade, self.transfer_actions))
        return trades

    def build_trade(self, event: MemeEvent) -> TradeInfo:
        pool = event.bonding_curve or event.pool
        return TradeInfo(
            type=event.type,
            pool=[pool] if pool else [],
            input_token=event.input_token,
            output_token=event.output_token,
            user=event.user,
            program_id=self.program.id,
            amm=self.dex_info.amm or self.program.name,
            route=self.dex_info.route,
            slot=self.adapter.slot,
            timestamp=event.timestamp,
            signature=self.adapter.signature,
            idx=event.idx,
        )


TRADE_DECODERS: Dict[str, Type[TradeDecoder]] = {}
LIQUIDITY_DECODERS: Dict[str, Type[LiquidityDecoder]] = {}
MEME_DECODERS: Dict[str, Type[MemeDecoder]] = {}

_REGISTRIES = {
    "trade": TRADE_DECODERS,
    "liquidity": LIQUIDITY_DECODERS,
    "meme": MEME_DECODERS,
}


def register_decoder(kind: str, program_ids: Iterable[str], decoder: Type[BaseDecoder]):
    registry = _REGISTRIES.get(kind)
    if registry is None:
        raise ValueError(f"Unknown decoder kind: {kind}")
    for program_id in program_ids:
        registry[program_id] = decoder


def get_decoder(kind: str, program_id: str) -> Optional[Type[BaseDecoder]]:
    registry = _REGISTRIES.get(kind)
    if registry is None:
        raise ValueError(f"Unknown decoder kind: {kind}")
    return registry.get(program_id)
