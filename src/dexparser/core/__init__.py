"""Transaction access, instruction grouping, transfer classification and swap synthesis."""

from .adapter import InnerInstructionSet, TransactionAdapter, decode_wire_transaction
from .classifier import InstructionClassifier
from .swap import TransactionUtils, transfer_token_info
from .transfers import TRANSFER_BUCKET, get_transfer_actions, parse_instruction_action

__all__ = [
    "InnerInstructionSet",
    "TransactionAdapter",
    "decode_wire_transaction",
    "InstructionClassifier",
    "TransactionUtils",
    "transfer_token_info",
    "TRANSFER_BUCKET",
    "get_transfer_actions",
    "parse_instruction_action",
]
