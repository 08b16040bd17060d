# pdf_merger/api/schemas.py
from typing import List, Optional

from pydantic import BaseModel, Field

from pdf_merger.domain.entry import SourceEntry
from pdf_merger.domain.session import MergeSession
from pdf_merger.utils.helpers import format_size_mb


class MergeRequest(BaseModel):
    urls: List[str] = Field(..., description="URLs de los PDFs, en el orden del documento final.")
    concurrency: Optional[int] = Field(
        None,
        ge=1,
        description="Máximo de descargas simultáneas. Si no se envía se usa el default del servicio.",
    )
    output_filename: Optional[str] = Field(
        None,
        description="Nombre sugerido para la descarga; siempre se fuerza la extensión .pdf.",
    )


class EntryStatusResponse(BaseModel):
    index: int
    origin: str
    status: str
    progress: int = Field(..., ge=0, le=100)
    size_mb: Optional[float] = None
    error_reason: Optional[str] = None

    @classmethod
    def from_entry(cls, index: int, entry: SourceEntry) -> "EntryStatusResponse":
        return cls(
            index=index,
            origin=entry.origin_id,
            status=entry.status.value,
            progress=entry.progress,
            size_mb=entry.size_mb,
            error_reason=entry.error_reason,
        )


class MergeSessionResponse(BaseModel):
    session_id: str
    phase: str
    progress: int = Field(..., ge=0, le=100, description="Progreso de la fase actual.")
    output_filename: str
    output_ready: bool = False
    output_size_mb: Optional[float] = None
    error: Optional[str] = None
    entries: List[EntryStatusResponse] = []

    @classmethod
    def from_session(cls, session: MergeSession) -> "MergeSessionResponse":
        output = session.output_buffer
        return cls(
            session_id=session.session_id,
            phase=session.phase.value,
            progress=session.aggregate_progress,
            output_filename=session.output_filename,
            output_ready=output is not None,
            output_size_mb=format_size_mb(len(output)) if output is not None else None,
            error=str(session.error) if session.error else None,
            entries=[EntryStatusResponse.from_entry(i, e) for i, e in enumerate(session.entries)],
        )
