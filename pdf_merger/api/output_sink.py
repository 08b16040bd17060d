from urllib.parse import quote

from fastapi import Response

from pdf_merger.utils.helpers import ensure_pdf_extension

PDF_MEDIA_TYPE = "application/pdf"


def _content_disposition(kind: str, filename: str) -> str:
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    return f"{kind}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


def view_response(buffer: bytes, filename: str) -> Response:
    """Serve the merged PDF for inline display in a viewer."""
    name = ensure_pdf_extension(filename)
    return Response(
        content=buffer,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": _content_disposition("inline", name)},
    )


def download_response(buffer: bytes, filename: str) -> Response:
    """Serve the merged PDF as a file download (.pdf extension enforced)."""
    name = ensure_pdf_extension(filename)
    return Response(
        content=buffer,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": _content_disposition("attachment", name)},
    )
