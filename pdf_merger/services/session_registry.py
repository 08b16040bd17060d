from functools import lru_cache
from typing import Dict, Optional

from pdf_merger.config.settings import get_settings
from pdf_merger.domain.session import MergePhase, MergeSession
from pdf_merger.logger import get_logger
from pdf_merger.utils.helpers import clean_temp_folder

logger = get_logger(__name__)

DEFAULT_MAX_FINISHED = 20

_FINISHED = (MergePhase.DONE, MergePhase.FAILED)


class SessionRegistry:
    """
    In-memory store of live merge sessions. Nothing survives a restart.

    Finished sessions (DONE/FAILED) keep their output buffer until discarded;
    at most `max_finished` of them are retained and the oldest are evicted
    when a new session is added.
    """

    def __init__(self, max_finished: int = DEFAULT_MAX_FINISHED) -> None:
        if max_finished < 1:
            raise ValueError(f"max_finished must be >= 1, got {max_finished}")
        self.max_finished = max_finished
        self._sessions: Dict[str, MergeSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: MergeSession) -> MergeSession:
        self._evict_finished()
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Optional[MergeSession]:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        if session.work_dir:
            clean_temp_folder(session.work_dir)
        logger.info("Discarded session %s", session_id)
        return True

    def _evict_finished(self) -> None:
        # dict conserva el orden de inserción: los primeros son los más viejos
        finished = [sid for sid, s in self._sessions.items() if s.phase in _FINISHED]
        excess = len(finished) - self.max_finished
        for session_id in finished[:max(excess, 0)]:
            logger.info("Evicting finished session %s", session_id)
            self.discard(session_id)


@lru_cache
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(max_finished=get_settings().max_finished_sessions)
