"""Instruction Classifier: groups outer and inner instructions by program id."""

from typing import Dict, List

from ..constants import SKIP_PROGRAM_IDS, is_system_program
from ..models import ClassifiedInstruction
from .adapter import TransactionAdapter


class InstructionClassifier:
    """Index of every instruction in a transaction, keyed by program id."""

    def __init__(self, adapter: TransactionAdapter):
        self.adapter = adapter
        self._by_program: Dict[str, List[ClassifiedInstruction]] = {}

        for outer_index, ix in enumerate(adapter.instructions):
            self._add(ClassifiedInstruction(ix, ix.program_id, outer_index, -1))
        for inner_set in adapter.inner_instructions:
            for inner_index, ix in enumerate(inner_set.instructions):
                self._add(ClassifiedInstruction(ix, ix.program_id, inner_set.index, inner_index))

    def _add(self, classified: ClassifiedInstruction) -> None:
        if not classified.program_id:
            return
        self._by_program.setdefault(classified.program_id, []).append(classified)

    def get_instructions(self, program_id: str) -> List[ClassifiedInstruction]:
        return list(self._by_program.get(program_id, []))

    def get_all_program_ids(self) -> List[str]:
        """Program ids in first-seen order, without system and skipped programs."""
        return [
            pid for pid in self._by_program
            if not is_system_program(pid) and pid not in SKIP_PROGRAM_IDS
        ]
