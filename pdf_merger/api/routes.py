# pdf_merger/api/routes.py
import os
import shutil
from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, Response, UploadFile, status

from pdf_merger.api.output_sink import download_response, view_response
from pdf_merger.api.schemas import MergeRequest, MergeSessionResponse
from pdf_merger.config.settings import Settings, get_settings
from pdf_merger.domain.entry import EntryStatus, LocalBlob
from pdf_merger.domain.errors import MergeError
from pdf_merger.domain.session import MergePhase, MergeSession
from pdf_merger.domain.source_list import SourceList
from pdf_merger.integrations.streaming_fetcher import StreamingFetcher
from pdf_merger.logger import get_logger
from pdf_merger.services.merge_coordinator import MergeCoordinator
from pdf_merger.services.session_registry import SessionRegistry, get_session_registry
from pdf_merger.services.worker_pool import WorkerPool
from pdf_merger.utils.helpers import clean_temp_folder, ensure_pdf_extension, sanitize_filename

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/merges", tags=["merges"])


def get_merge_coordinator(settings: Settings = Depends(get_settings)) -> MergeCoordinator:
    """Dependency injection para MergeCoordinator según la configuración."""
    fetcher = StreamingFetcher(timeout=settings.fetch_timeout, chunk_size=settings.chunk_size)
    return MergeCoordinator(
        pool=WorkerPool(fetcher=fetcher),
        default_concurrency=settings.default_concurrency,
    )


async def run_session(
    coordinator: MergeCoordinator,
    session: MergeSession,
    concurrency: Optional[int] = None,
    retry_indices: Optional[List[int]] = None,
) -> None:
    """Ejecuta la sesión en background. Los MergeError ya quedan registrados en la sesión."""
    try:
        await coordinator.run(session, concurrency=concurrency, retry_indices=retry_indices)
    except MergeError as e:
        logger.warning("Session %s ended with merge error: %s", session.session_id, e)


def _get_session_or_404(session_id: str, registry: SessionRegistry) -> MergeSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Merge session not found: {session_id}",
        )
    return session


def _get_output_or_409(session: MergeSession) -> bytes:
    if session.phase is not MergePhase.DONE or session.output_buffer is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Merged PDF not available (phase={session.phase.value})",
        )
    return session.output_buffer


@router.post("", response_model=MergeSessionResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_merge(
    request: MergeRequest,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    coordinator: MergeCoordinator = Depends(get_merge_coordinator),
    registry: SessionRegistry = Depends(get_session_registry),
) -> MergeSessionResponse:
    """
    Crea una sesión de merge a partir de URLs remotas y la ejecuta en background.

    El orden de `urls` es el orden de páginas del PDF final. El progreso se
    consulta con GET /api/v1/merges/{session_id}.
    """
    sources = SourceList()
    try:
        for url in request.urls:
            sources.add(url)
    except ValueError as e:
        logger.error("Validation error in merge request: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid request: {e}")

    session = registry.add(MergeSession(
        entries=sources.to_entries(),
        output_filename=ensure_pdf_extension(request.output_filename or "", settings.default_output_filename),
    ))
    logger.info("Created merge session %s with %d URLs", session.session_id, len(sources))

    background_tasks.add_task(run_session, coordinator, session, request.concurrency)
    return MergeSessionResponse.from_session(session)


@router.post("/upload", response_model=MergeSessionResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_merge_from_files(
    background_tasks: BackgroundTasks,
    files: List[UploadFile] = File(..., description="PDFs locales en el orden de selección."),
    concurrency: Optional[int] = Form(None, ge=1),
    output_filename: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings),
    coordinator: MergeCoordinator = Depends(get_merge_coordinator),
    registry: SessionRegistry = Depends(get_session_registry),
) -> MergeSessionResponse:
    """
    Crea una sesión de merge a partir de archivos subidos.

    Los archivos se guardan en `temp_dir/<session_id>` y se referencian como
    LocalBlob; la carpeta se elimina al descartar la sesión.
    """
    session_id = uuid4().hex
    work_dir = os.path.join(settings.temp_dir, session_id)
    os.makedirs(work_dir, exist_ok=True)

    sources = SourceList()
    blobs = []
    try:
        for position, upload in enumerate(files):
            name = upload.filename or f"file_{position + 1}.pdf"
            path = os.path.join(work_dir, f"{position:03d}_{sanitize_filename(os.path.basename(name))}")
            with open(path, "wb") as fh:
                shutil.copyfileobj(upload.file, fh)
            blobs.append(LocalBlob(name=name, path=path))
    except OSError as e:
        clean_temp_folder(work_dir)
        logger.error("Could not spool uploaded files: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error while storing uploaded files",
        )
    sources.append_files(blobs)

    session = registry.add(MergeSession(
        entries=sources.to_entries(),
        output_filename=ensure_pdf_extension(output_filename or "", settings.default_output_filename),
        session_id=session_id,
        work_dir=work_dir,
    ))
    logger.info("Created merge session %s with %d uploaded files", session.session_id, len(sources))

    background_tasks.add_task(run_session, coordinator, session, concurrency)
    return MergeSessionResponse.from_session(session)


@router.get("/{session_id}", response_model=MergeSessionResponse)
async def get_merge(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> MergeSessionResponse:
    """Estado de la sesión: fase, progreso agregado y detalle por entrada."""
    return MergeSessionResponse.from_session(_get_session_or_404(session_id, registry))


@router.post("/{session_id}/retry", response_model=MergeSessionResponse, status_code=status.HTTP_202_ACCEPTED)
async def retry_merge(
    session_id: str,
    background_tasks: BackgroundTasks,
    concurrency: Optional[int] = Query(None, ge=1),
    coordinator: MergeCoordinator = Depends(get_merge_coordinator),
    registry: SessionRegistry = Depends(get_session_registry),
) -> MergeSessionResponse:
    """
    Reintenta explícitamente las entradas fallidas y vuelve a unir.
    Las entradas exitosas conservan sus bytes y no se descargan de nuevo.
    """
    session = _get_session_or_404(session_id, registry)
    if session.is_running:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Merge session is still running")

    failed = [i for i, e in enumerate(session.entries) if e.status is EntryStatus.FAILED]
    if not failed and session.phase is MergePhase.DONE:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Nothing to retry")

    session.rewind()
    # sin entradas fallidas (p.ej. un PDF corrupto) se vuelve a adquirir todo
    retry_indices = failed or None
    logger.info("Retrying session %s (entries=%s)", session_id, retry_indices or "all")

    background_tasks.add_task(run_session, coordinator, session, concurrency, retry_indices)
    return MergeSessionResponse.from_session(session)


@router.get("/{session_id}/view")
async def view_merged(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    """Abre el PDF unido inline (visor del navegador)."""
    session = _get_session_or_404(session_id, registry)
    return view_response(_get_output_or_409(session), session.output_filename)


@router.get("/{session_id}/download")
async def download_merged(
    session_id: str,
    filename: Optional[str] = Query(None, description="Nombre del archivo; se fuerza .pdf"),
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    """Descarga el PDF unido como archivo."""
    session = _get_session_or_404(session_id, registry)
    return download_response(_get_output_or_409(session), filename or session.output_filename)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_merge(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    """Descarta la sesión y sus archivos temporales."""
    session = _get_session_or_404(session_id, registry)
    if session.is_running:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Merge session is still running")
    registry.discard(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
