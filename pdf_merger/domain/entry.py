# pdf_merger/domain/entry.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from pdf_merger.domain.errors import InvalidTransitionError


class EntryStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class UrlOrigin:
    url: str

    @property
    def origin_id(self) -> str:
        return self.url


@dataclass(frozen=True)
class LocalBlob:
    """
    Handle opaco a un archivo elegido localmente.
    `name` es el nombre original del archivo; `path` es donde vive su contenido.
    """
    name: str
    path: str

    @property
    def origin_id(self) -> str:
        return self.name


Origin = Union[UrlOrigin, LocalBlob]


@dataclass
class SourceEntry:
    """
    Una tarea de adquisición de PDF más su estado.

    Máquina de estados: PENDING -> IN_PROGRESS -> {SUCCESS, FAILED}.
    Solo reset() saca una entrada de SUCCESS o FAILED (de vuelta a PENDING).
    Cada campo lo escribe únicamente el worker que tiene reclamado el índice.
    """
    origin: Origin
    status: EntryStatus = EntryStatus.PENDING
    progress: int = 0
    size_mb: Optional[float] = None
    error_reason: Optional[str] = None
    payload: Optional[bytes] = field(default=None, repr=False)

    @property
    def origin_id(self) -> str:
        return self.origin.origin_id

    @property
    def is_resolved(self) -> bool:
        return self.status in (EntryStatus.SUCCESS, EntryStatus.FAILED)

    def reset(self) -> None:
        self.status = EntryStatus.PENDING
        self.progress = 0
        self.size_mb = None
        self.error_reason = None
        self.payload = None

    def start(self) -> None:
        if self.status is not EntryStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot start entry {self.origin_id!r} from status {self.status.value}"
            )
        self.status = EntryStatus.IN_PROGRESS
        self.progress = 0

    def update_progress(self, value: int) -> None:
        if self.status is not EntryStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Progress update on entry {self.origin_id!r} with status {self.status.value}"
            )
        value = max(0, min(100, int(value)))
        # nunca retrocede mientras está en curso
        if value > self.progress:
            self.progress = value

    def succeed(self, payload: bytes, size_mb: float) -> None:
        if self.status is not EntryStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Cannot complete entry {self.origin_id!r} from status {self.status.value}"
            )
        if not payload:
            raise ValueError(f"Empty payload for entry {self.origin_id!r}")
        self.status = EntryStatus.SUCCESS
        self.payload = payload
        self.size_mb = size_mb
        self.error_reason = None
        self.progress = 100

    def fail(self, reason: str) -> None:
        if self.status is not EntryStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Cannot fail entry {self.origin_id!r} from status {self.status.value}"
            )
        self.status = EntryStatus.FAILED
        self.error_reason = reason or "Download failed"
        self.payload = None
        self.size_mb = None
