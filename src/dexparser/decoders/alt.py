"""Address Lookup Table program events."""

import logging
from typing import List, Optional

from ..constants import ALT_PROGRAM_ID, AltInstruction
from ..core.adapter import TransactionAdapter
from ..models import AltEvent, ClassifiedInstruction
from ..utils.binary_cursor import BinaryCursor, cursor

logger = logging.getLogger(__name__)

_EVENT_NAMES = {
    AltInstruction.CREATE_LOOKUP_TABLE: "CreateLookupTable",
    AltInstruction.FREEZE_LOOKUP_TABLE: "FreezeLookupTable",
    AltInstruction.EXTEND_LOOKUP_TABLE: "ExtendLookupTable",
    AltInstruction.DEACTIVATE_LOOKUP_TABLE: "DeactivateLookupTable",
    AltInstruction.CLOSE_LOOKUP_TABLE: "CloseLookupTable",
}

# Minimum accounts per instruction: table, authority, then payer or recipient
_MIN_ACCOUNTS = {
    AltInstruction.CREATE_LOOKUP_TABLE: 3,
    AltInstruction.FREEZE_LOOKUP_TABLE: 2,
    AltInstruction.EXTEND_LOOKUP_TABLE: 2,
    AltInstruction.DEACTIVATE_LOOKUP_TABLE: 2,
    AltInstruction.CLOSE_LOOKUP_TABLE: 3,
}


class AltEventDecoder:
    """Lookup-table lifecycle: create, extend, freeze, deactivate and close."""

    def __init__(self, adapter: TransactionAdapter, classified_instructions: List[ClassifiedInstruction]):
        self.adapter = adapter
        self.classified_instructions = classified_instructions

    def process_events(self) -> List[AltEvent]:
        events = []
        for ci in self.classified_instructions:
            if ci.program_id != ALT_PROGRAM_ID or len(ci.data) < 4:
                continue
            event = self.decode_instruction(ci)
            if event is not None:
                event.idx = ci.idx
                events.append(event)
        return events

    def decode_instruction(self, ci: ClassifiedInstruction) -> Optional[AltEvent]:
        accounts = ci.accounts
        with cursor(ci.data) as reader:
            try:
                kind = AltInstruction(reader.read_u32())
            except ValueError:
                logger.debug("Unknown lookup table instruction at %s", ci.idx)
                return None
            if len(accounts) < _MIN_ACCOUNTS[kind]:
                return None

            event = AltEvent(type=_EVENT_NAMES[kind], alt_account=accounts[0], alt_authority=accounts[1])
            if kind == AltInstruction.CREATE_LOOKUP_TABLE:
                event.payer_account = accounts[2]
                event.recent_slot = reader.read_u64()
            elif kind == AltInstruction.EXTEND_LOOKUP_TABLE:
                event.payer_account = accounts[2] if len(accounts) > 2 else None
                event.new_addresses = self._read_addresses(reader)
            elif kind == AltInstruction.CLOSE_LOOKUP_TABLE:
                event.recipient = accounts[2]

            if reader.has_error:
                return None
            return event

    @staticmethod
    def _read_addresses(reader: BinaryCursor) -> Optional[List[str]]:
        count = reader.read_u64()
        if reader.has_error:
            return None
        addresses = []
        for _ in range(min(count, reader.remaining() // 32)):
            addresses.append(reader.read_pubkey())
        return addresses
