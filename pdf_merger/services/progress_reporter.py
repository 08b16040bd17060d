from dataclasses import dataclass
from typing import Callable, Optional

from pdf_merger.domain.entry import SourceEntry
from pdf_merger.domain.session import MergeSession
from pdf_merger.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    kind: str  # "entry" | "session"
    progress: int
    index: Optional[int] = None
    status: Optional[str] = None
    phase: Optional[str] = None
    detail: Optional[str] = None


ProgressListener = Callable[[ProgressEvent], None]


class ProgressReporter:
    """
    Publishes coarse-grained progress updates so callers (UI, API polling,
    tests) can follow a merge without touching the workers.
    """

    def __init__(self, listener: Optional[ProgressListener] = None) -> None:
        self.listener = listener

    def entry(self, index: int, entry: SourceEntry) -> None:
        logger.debug(
            "entry=%d status=%s progress=%d origin=%s",
            index, entry.status.value, entry.progress, entry.origin_id,
        )
        self._emit(ProgressEvent(
            kind="entry",
            index=index,
            progress=entry.progress,
            status=entry.status.value,
            detail=entry.error_reason,
        ))

    def session(self, session: MergeSession, detail: Optional[str] = None) -> None:
        logger.info(
            "session=%s phase=%s progress=%d%s",
            session.session_id,
            session.phase.value,
            session.aggregate_progress,
            f" ({detail})" if detail else "",
        )
        self._emit(ProgressEvent(
            kind="session",
            progress=session.aggregate_progress,
            phase=session.phase.value,
            detail=detail,
        ))

    def _emit(self, event: ProgressEvent) -> None:
        if self.listener is not None:
            self.listener(event)
