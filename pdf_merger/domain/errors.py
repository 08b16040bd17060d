# pdf_merger/domain/errors.py
"""
Taxonomía de errores del pipeline.

- FetchError: siempre local a una entrada. Marca esa entrada como FAILED y el
  resto del pool continúa.
- MergeError: siempre fatal para la sesión. La sesión pasa a FAILED y nunca se
  expone un PDF parcial.
"""
from typing import Optional


class FetchError(Exception):
    """Fallo al adquirir una entrada (remota o local)."""


class HttpStatusError(FetchError):
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


class NetworkError(FetchError):
    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail
        super().__init__(f"Network error: {detail}" if detail else "Network error")


class StreamUnavailableError(FetchError):
    def __init__(self) -> None:
        super().__init__("No readable stream")


class BlobReadError(FetchError):
    def __init__(self, name: str, detail: Optional[str] = None) -> None:
        self.name = name
        message = f"Could not read local file '{name}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class MergeError(Exception):
    """Fallo que aborta la sesión de merge completa."""


class InsufficientInputsError(MergeError):
    def __init__(self, succeeded: int, required: int = 2) -> None:
        self.succeeded = succeeded
        self.required = required
        super().__init__(
            f"Need at least {required} successful PDFs to merge, got {succeeded}"
        )


class CorruptSourceError(MergeError):
    def __init__(self, origin_id: str, detail: Optional[str] = None) -> None:
        self.origin_id = origin_id
        message = f"Source could not be opened as PDF: {origin_id}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class SerializationFailedError(MergeError):
    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail
        super().__init__(f"Could not serialize merged PDF: {detail}" if detail else "Could not serialize merged PDF")


class InvalidTransitionError(ValueError):
    """Transición no permitida en la máquina de estados de una entrada o sesión."""
