from io import BytesIO
from typing import List

from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PdfReadError

# PDF readers accept the header anywhere in the first KB.
HEADER_SEARCH_WINDOW = 1024


class PdfCodec:
    """
    Thin adapter over pypdf exposing the operations the merge step needs.
    Parsing, object graphs and xref handling stay inside pypdf.
    """

    def create_document(self) -> PdfWriter:
        return PdfWriter()

    def load_document(self, data: bytes) -> PdfReader:
        """
        Open a PDF from bytes. Raises PdfReadError (or whatever pypdf raises)
        on malformed input; the page tree is walked here so broken documents
        fail on load rather than halfway through a merge.
        """
        if b"%PDF-" not in data[:HEADER_SEARCH_WINDOW]:
            raise PdfReadError("missing %PDF- header")
        reader = PdfReader(BytesIO(data))
        len(reader.pages)
        return reader

    def page_indices(self, document: PdfReader) -> List[int]:
        return list(range(len(document.pages)))

    def copy_pages(self, source: PdfReader, indices: List[int]) -> List[PageObject]:
        return [source.pages[i] for i in indices]

    def add_page(self, destination: PdfWriter, page: PageObject) -> PageObject:
        """Import `page` into `destination` and append it; returns the destination-owned copy."""
        return destination.add_page(page)

    def save_document(self, destination: PdfWriter) -> bytes:
        buffer = BytesIO()
        destination.write(buffer)
        destination.close()
        return buffer.getvalue()
