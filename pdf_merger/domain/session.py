# pdf_merger/domain/session.py
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pdf_merger.domain.entry import EntryStatus, SourceEntry
from pdf_merger.domain.errors import InvalidTransitionError, MergeError


class MergePhase(str, Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


_ALLOWED = {
    MergePhase.IDLE: {MergePhase.DOWNLOADING},
    MergePhase.DOWNLOADING: {MergePhase.MERGING, MergePhase.FAILED},
    MergePhase.MERGING: {MergePhase.DONE, MergePhase.FAILED},
    MergePhase.DONE: set(),
    MergePhase.FAILED: set(),
}


@dataclass
class MergeSession:
    """
    Una ejecución de merge de punta a punta.

    Fases: IDLE -> DOWNLOADING -> MERGING -> DONE | FAILED.
    `output_buffer` solo existe en DONE; `error` solo en FAILED.
    """
    entries: List[SourceEntry]
    output_filename: str = "merged.pdf"
    session_id: str = field(default_factory=lambda: uuid4().hex)
    phase: MergePhase = MergePhase.IDLE
    aggregate_progress: int = 0
    output_buffer: Optional[bytes] = field(default=None, repr=False)
    error: Optional[MergeError] = None
    work_dir: Optional[str] = None

    @property
    def successful_entries(self) -> List[SourceEntry]:
        # orden de la lista de entrada, nunca el orden en que terminaron
        return [e for e in self.entries if e.status is EntryStatus.SUCCESS]

    @property
    def resolved_count(self) -> int:
        return sum(1 for e in self.entries if e.is_resolved)

    @property
    def is_running(self) -> bool:
        return self.phase in (MergePhase.DOWNLOADING, MergePhase.MERGING)

    def transition(self, phase: MergePhase) -> None:
        if phase not in _ALLOWED[self.phase]:
            raise InvalidTransitionError(
                f"Session {self.session_id} cannot go from {self.phase.value} to {phase.value}"
            )
        self.phase = phase
        if phase in (MergePhase.DOWNLOADING, MergePhase.MERGING):
            self.aggregate_progress = 0

    def set_progress(self, value: int) -> None:
        self.aggregate_progress = max(0, min(100, int(value)))

    def complete(self, output: bytes) -> None:
        self.transition(MergePhase.DONE)
        self.output_buffer = output
        self.aggregate_progress = 100

    def fail(self, error: MergeError) -> None:
        self.transition(MergePhase.FAILED)
        self.error = error
        self.output_buffer = None

    def rewind(self) -> None:
        """Vuelve a IDLE conservando el estado de las entradas (para reintentos)."""
        if self.is_running:
            raise InvalidTransitionError(f"Session {self.session_id} is still running")
        self.phase = MergePhase.IDLE
        self.aggregate_progress = 0
        self.output_buffer = None
        self.error = None

    def reset(self) -> None:
        """Vuelve a IDLE y todas las entradas a PENDING."""
        self.rewind()
        for entry in self.entries:
            entry.reset()
