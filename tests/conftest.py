# tests/conftest.py
"""
Fixtures compartidos: PDFs reales generados con pypdf y transportes HTTP simulados.
"""
from io import BytesIO
from typing import Dict, Iterable, List, Optional

import httpx
import pytest
from pypdf import PdfReader, PdfWriter


def make_pdf(page_count: int, doc_tag: int) -> bytes:
    """
    Crea un PDF en memoria con `page_count` páginas en blanco.
    El ancho de cada página codifica (documento, página): 100 * doc_tag + página.
    """
    writer = PdfWriter()
    for page in range(page_count):
        writer.add_blank_page(width=100 * doc_tag + page, height=200)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def page_signature(pdf_bytes: bytes) -> List[int]:
    """Anchos de página del PDF, en orden: permite verificar orden y origen."""
    reader = PdfReader(BytesIO(pdf_bytes))
    return [int(float(page.mediabox.width)) for page in reader.pages]


class ChunkedStream(httpx.AsyncByteStream):
    """Body asíncrono que entrega exactamente los chunks indicados."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = list(chunks)

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk


def split_chunks(data: bytes, parts: int) -> List[bytes]:
    size = max(1, -(-len(data) // parts))
    return [data[i:i + size] for i in range(0, len(data), size)]


def pdf_transport(routes: Dict[str, bytes], statuses: Optional[Dict[str, int]] = None) -> httpx.MockTransport:
    """
    Transporte que sirve `routes` (path -> bytes) con Content-Length.
    `statuses` permite forzar un código HTTP por path.
    """
    statuses = statuses or {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path in statuses:
            return httpx.Response(statuses[path])
        if path not in routes:
            return httpx.Response(404)
        return httpx.Response(200, content=routes[path], headers={"Content-Type": "application/pdf"})

    return httpx.MockTransport(handler)


@pytest.fixture
def pdf_a() -> bytes:
    return make_pdf(3, doc_tag=1)


@pytest.fixture
def pdf_b() -> bytes:
    return make_pdf(2, doc_tag=2)


@pytest.fixture
def pdf_c() -> bytes:
    return make_pdf(1, doc_tag=3)
