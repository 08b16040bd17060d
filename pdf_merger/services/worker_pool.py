# pdf_merger/services/worker_pool.py
"""
Pool de workers que descarga/lee las entradas con concurrencia acotada.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Iterable, List, Optional

from pdf_merger.domain.entry import LocalBlob, SourceEntry, UrlOrigin
from pdf_merger.domain.errors import FetchError
from pdf_merger.integrations.blob_reader import BlobReader
from pdf_merger.integrations.streaming_fetcher import FetchResult, StreamingFetcher
from pdf_merger.logger import get_logger
from pdf_merger.services.progress_reporter import ProgressReporter

logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 5

ResolvedCallback = Callable[[int, int], None]


class WorkerPool:
    """
    Drena una cola compartida de índices con hasta `concurrency` workers.

    - Reclamar un índice es exclusivo: `get_nowait()` sin await de por medio,
      así que es atómico dentro del event loop.
    - El fallo de una entrada queda aislado en esa entrada; el pool nunca
      falla hacia afuera y siempre espera a todos los workers.
    - El orden en que las entradas terminan NO sigue el orden de la cola.
    """

    def __init__(
        self,
        fetcher: Optional[StreamingFetcher] = None,
        blob_reader: Optional[BlobReader] = None,
        reporter: Optional[ProgressReporter] = None,
    ) -> None:
        self.fetcher = fetcher or StreamingFetcher()
        self.blob_reader = blob_reader or BlobReader()
        self.reporter = reporter or ProgressReporter()

    async def run(
        self,
        entries: List[SourceEntry],
        concurrency: int = DEFAULT_CONCURRENCY,
        indices: Optional[Iterable[int]] = None,
        on_resolved: Optional[ResolvedCallback] = None,
    ) -> None:
        """
        Adquiere las entradas indicadas (por defecto todas) y retorna cuando
        cada una quedó en SUCCESS o FAILED.

        Args:
            entries: Lista ordenada de entradas (se modifica en sitio)
            concurrency: Máximo de adquisiciones simultáneas (>= 1)
            indices: Subconjunto a (re)adquirir; se reinician a PENDING antes de empezar
            on_resolved: Callback (resueltas, total) cada vez que una entrada termina

        Raises:
            ValueError: Si concurrency < 1 o algún índice está fuera de rango
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")

        selected = list(range(len(entries))) if indices is None else list(dict.fromkeys(indices))
        for index in selected:
            if not 0 <= index < len(entries):
                raise IndexError(f"No entry at position {index}")

        # Reinicio idempotente: SUCCESS/FAILED vuelven a PENDING.
        for index in selected:
            entries[index].reset()

        queue: asyncio.Queue[int] = asyncio.Queue()
        for index in selected:
            queue.put_nowait(index)

        total = len(selected)
        resolved = 0

        def mark_resolved() -> None:
            nonlocal resolved
            resolved += 1
            if on_resolved is not None:
                on_resolved(resolved, total)

        async def worker(worker_id: int) -> None:
            while True:
                try:
                    index = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                await self._process(index, entries[index], worker_id)
                mark_resolved()

        worker_count = min(concurrency, total)
        logger.info("Acquiring %d entries with %d workers", total, worker_count)

        await asyncio.gather(*(worker(i) for i in range(worker_count)))

        failed = sum(1 for i in selected if not entries[i].payload)
        logger.info("Acquisition finished: %d ok, %d failed", total - failed, failed)

    async def _process(self, index: int, entry: SourceEntry, worker_id: int) -> None:
        entry.start()
        self.reporter.entry(index, entry)
        logger.debug("worker=%d claimed entry=%d", worker_id, index)

        def on_progress(value: int) -> None:
            entry.update_progress(value)
            self.reporter.entry(index, entry)

        try:
            result = await self._acquire(entry, on_progress)
            if not result.payload:
                entry.fail("Empty response body")
            else:
                entry.succeed(result.payload, result.size_mb)
        except FetchError as e:
            entry.fail(str(e))
        except Exception as e:
            logger.error("Unexpected error acquiring %s: %s", entry.origin_id, e, exc_info=True)
            entry.fail(str(e) or "Download failed")

        if entry.error_reason:
            logger.warning("Entry %d failed (%s): %s", index, entry.origin_id, entry.error_reason)
        self.reporter.entry(index, entry)

    async def _acquire(self, entry: SourceEntry, on_progress) -> FetchResult:
        origin = entry.origin
        if isinstance(origin, UrlOrigin):
            return await self.fetcher.fetch(origin.url, on_progress)
        if isinstance(origin, LocalBlob):
            return await self.blob_reader.read(origin, on_progress)
        raise TypeError(f"Unsupported origin type: {type(origin).__name__}")
