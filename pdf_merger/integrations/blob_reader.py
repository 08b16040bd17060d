# pdf_merger/integrations/blob_reader.py
import asyncio
import os

from pdf_merger.domain.entry import LocalBlob
from pdf_merger.domain.errors import BlobReadError
from pdf_merger.integrations.streaming_fetcher import FetchResult, ProgressCallback, next_progress
from pdf_merger.logger import get_logger
from pdf_merger.utils.helpers import format_size_mb

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


class BlobReader:
    """
    Equivalente local de StreamingFetcher: lee un archivo elegido por el
    usuario por chunks, fuera del event loop, reportando progreso exacto
    según el tamaño del archivo.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.chunk_size = chunk_size

    async def read(self, blob: LocalBlob, on_progress: ProgressCallback) -> FetchResult:
        try:
            total = await asyncio.to_thread(os.path.getsize, blob.path)
            chunks = []
            received = 0
            progress = 0
            with open(blob.path, "rb") as fh:
                while True:
                    chunk = await asyncio.to_thread(fh.read, self.chunk_size)
                    if not chunk:
                        break
                    chunks.append(chunk)
                    received += len(chunk)
                    progress = next_progress(received, total, progress)
                    on_progress(progress)
        except OSError as e:
            logger.warning("Could not read local file %s: %s", blob.name, e)
            raise BlobReadError(blob.name, e.strerror or str(e)) from e

        payload = b"".join(chunks)
        size_mb = format_size_mb(len(payload))
        logger.info("Read local file %s (%.2f MB)", blob.name, size_mb)
        return FetchResult(payload=payload, size_mb=size_mb)
