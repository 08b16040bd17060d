# pdf_merger/services/merge_coordinator.py
"""
Orquestador de una sesión de merge completa.

Flujo:
1. DOWNLOADING: adquisición en paralelo (fallos aislados por entrada)
2. Filtrar entradas exitosas en el orden de la lista original
3. MERGING: copiar páginas documento por documento, estrictamente en orden
4. Serializar y exponer el buffer final (DONE) o abortar sin salida (FAILED)
"""
from __future__ import annotations

import asyncio
from typing import Iterable, Optional

from pdf_merger.domain.errors import (
    CorruptSourceError,
    InsufficientInputsError,
    MergeError,
    SerializationFailedError,
)
from pdf_merger.domain.session import MergePhase, MergeSession
from pdf_merger.logger import get_logger
from pdf_merger.pdf.pdf_codec import PdfCodec
from pdf_merger.services.progress_reporter import ProgressReporter
from pdf_merger.services.worker_pool import DEFAULT_CONCURRENCY, WorkerPool
from pdf_merger.utils.helpers import percent

logger = get_logger(__name__)

MIN_SUCCESSFUL_INPUTS = 2


class MergeCoordinator:
    """
    Coordina descarga y merge de una MergeSession.

    La adquisición es concurrente y tolera fallos parciales; el merge es
    secuencial y todo-o-nada. El orden de páginas sale siempre de la lista
    de entrada, nunca del orden en que terminaron las descargas.
    """

    def __init__(
        self,
        pool: Optional[WorkerPool] = None,
        codec: Optional[PdfCodec] = None,
        reporter: Optional[ProgressReporter] = None,
        default_concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self.reporter = reporter or ProgressReporter()
        self.pool = pool or WorkerPool(reporter=self.reporter)
        self.codec = codec or PdfCodec()
        self.default_concurrency = default_concurrency

    async def run(
        self,
        session: MergeSession,
        concurrency: Optional[int] = None,
        retry_indices: Optional[Iterable[int]] = None,
    ) -> bytes:
        """
        Ejecuta la sesión de punta a punta.

        Args:
            session: Sesión en fase IDLE (usar rewind()/reset() para re-ejecutar)
            concurrency: Límite de descargas simultáneas (default del coordinador)
            retry_indices: Si se indica, solo se re-adquieren esas entradas y el
                resto conserva su resultado previo. None = adquirir todas.

        Returns:
            Bytes del PDF unido

        Raises:
            MergeError: InsufficientInputsError, CorruptSourceError o
                SerializationFailedError. La sesión queda en FAILED con el
                mismo error en `session.error`.
        """
        concurrency = self.default_concurrency if concurrency is None else concurrency
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        if retry_indices is not None:
            retry_indices = list(retry_indices)
            out_of_range = [i for i in retry_indices if not 0 <= i < len(session.entries)]
            if out_of_range:
                raise IndexError(f"No entries at positions {out_of_range}")

        session.transition(MergePhase.DOWNLOADING)
        self.reporter.session(session, f"{len(session.entries)} entries")

        try:
            await self._download(session, concurrency, retry_indices)
            output = await self._merge(session)
        except MergeError as e:
            session.fail(e)
            logger.error("Merge session %s failed: %s", session.session_id, e)
            self.reporter.session(session, str(e))
            raise

        session.complete(output)
        logger.info(
            "Merge session %s done: %d documents, %d bytes",
            session.session_id,
            len(session.successful_entries),
            len(output),
        )
        self.reporter.session(session)
        return output

    async def _download(
        self,
        session: MergeSession,
        concurrency: int,
        retry_indices: Optional[Iterable[int]],
    ) -> None:
        total = len(session.entries)

        def on_resolved(_resolved: int, _batch: int) -> None:
            # en reintentos cuenta también las entradas que ya estaban resueltas
            done = session.resolved_count
            session.set_progress(percent(done, total))
            self.reporter.session(session, f"{done} of {total} downloaded")

        await self.pool.run(
            session.entries,
            concurrency=concurrency,
            indices=retry_indices,
            on_resolved=on_resolved,
        )

    async def _merge(self, session: MergeSession) -> bytes:
        valid = session.successful_entries
        if len(valid) < MIN_SUCCESSFUL_INPUTS:
            raise InsufficientInputsError(len(valid), MIN_SUCCESSFUL_INPUTS)

        session.transition(MergePhase.MERGING)
        self.reporter.session(session, f"{len(valid)} documents")

        merged = self.codec.create_document()
        for position, entry in enumerate(valid, start=1):
            try:
                source = self.codec.load_document(entry.payload)
            except Exception as e:
                raise CorruptSourceError(entry.origin_id, str(e)) from e

            try:
                pages = self.codec.copy_pages(source, self.codec.page_indices(source))
                for page in pages:
                    self.codec.add_page(merged, page)
            except Exception as e:
                raise CorruptSourceError(entry.origin_id, str(e)) from e

            logger.debug("Copied %d pages from %s", len(pages), entry.origin_id)
            session.set_progress(percent(position, len(valid)))
            self.reporter.session(session, f"{position} of {len(valid)} merged")
            # cede el loop entre documentos para que el progreso sea observable
            await asyncio.sleep(0)

        try:
            return await asyncio.to_thread(self.codec.save_document, merged)
        except Exception as e:
            raise SerializationFailedError(str(e)) from e
