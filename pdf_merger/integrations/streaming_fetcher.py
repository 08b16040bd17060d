"""
Descarga de PDFs remotos con progreso incremental.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx

from pdf_merger.domain.errors import HttpStatusError, NetworkError, StreamUnavailableError
from pdf_merger.logger import get_logger
from pdf_merger.utils.helpers import format_size_mb, percent

logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]

# Paso fijo del progreso estimado cuando no hay Content-Length.
HEURISTIC_STEP = 10


@dataclass(frozen=True)
class FetchResult:
    payload: bytes = field(repr=False)
    size_mb: float


def next_progress(received: int, total: Optional[int], previous: int) -> int:
    """
    Calcula el siguiente porcentaje tras recibir un chunk.

    Con `total` conocido: received / total * 100 redondeado (mitades hacia arriba), acotado a 100.
    Sin `total`: previous + HEURISTIC_STEP, acotado a 100. Es una estimación,
    no una medida: puede quedarse en 100 antes del final real o quedarse
    corta y saltar a 100 al completar.
    """
    if total:
        return min(100, percent(received, total))
    return min(100, previous + HEURISTIC_STEP)


def _declared_length(response: httpx.Response) -> Optional[int]:
    raw = response.headers.get("Content-Length")
    try:
        length = int(raw) if raw is not None else 0
    except ValueError:
        return None
    return length if length > 0 else None


class StreamingFetcher:
    """
    Cliente HTTP que descarga un recurso leyendo el body por chunks.

    Progreso reportado vía `on_progress(percent)`:
    - Si la respuesta declara Content-Length, el porcentaje es exacto y
      monótono (los bytes recibidos solo crecen).
    - Si no lo declara, el porcentaje es HEURÍSTICO: +10 por chunk hasta 100.
      Puede estancarse antes del final real y saltar a 100 al terminar.

    Sin timeout por defecto: una request colgada bloquea su worker
    indefinidamente salvo que se configure `timeout`.

    Uso:
        fetcher = StreamingFetcher()
        result = await fetcher.fetch("https://example.com/a.pdf", print)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        chunk_size: Optional[int] = None,
    ) -> None:
        """
        Args:
            client: AsyncClient compartido (para testing/DI). Si es None se abre uno por descarga.
            timeout: Timeout en segundos por request. None = sin timeout.
            chunk_size: Tamaño de chunk para leer el body. None = el del transporte.
        """
        self._client = client
        self.timeout = timeout
        self.chunk_size = chunk_size

    async def fetch(self, url: str, on_progress: ProgressCallback) -> FetchResult:
        if self._client is not None:
            return await self._fetch_with(self._client, url, on_progress)

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
        ) as client:
            return await self._fetch_with(client, url, on_progress)

    async def _fetch_with(
        self,
        client: httpx.AsyncClient,
        url: str,
        on_progress: ProgressCallback,
    ) -> FetchResult:
        logger.debug("Fetching %s", url)
        try:
            async with client.stream("GET", url) as response:
                if not response.is_success:
                    raise HttpStatusError(response.status_code)
                if not isinstance(response.stream, httpx.AsyncByteStream):
                    raise StreamUnavailableError()

                total = _declared_length(response)
                chunks = []
                received = 0
                progress = 0

                async for chunk in response.aiter_bytes(self.chunk_size):
                    if not chunk:
                        continue
                    chunks.append(chunk)
                    received += len(chunk)
                    progress = next_progress(received, total, progress)
                    on_progress(progress)

        except (httpx.RequestError, httpx.InvalidURL, httpx.StreamError) as e:
            logger.warning("Network error fetching %s: %s", url, e)
            raise NetworkError(str(e) or type(e).__name__) from e

        payload = b"".join(chunks)
        size_mb = format_size_mb(len(payload))
        logger.info("Fetched %s (%.2f MB, declared_length=%s)", url, size_mb, total)
        return FetchResult(payload=payload, size_mb=size_mb)
