# pdf_merger/utils/helpers.py
import os
import re
import shutil

from pdf_merger.logger import get_logger

logger = get_logger(__name__)


def sanitize_filename(filename: str) -> str:
    """
    Limpia nombres de archivo para que sean seguros en cualquier SO.
    """
    return re.sub(r'[\\/*?:"<>|\r\n]', "_", filename).strip()


def ensure_pdf_extension(filename: str, default: str = "merged.pdf") -> str:
    """
    Normaliza el nombre de descarga: sanitizado y siempre terminado en .pdf.
    Ejemplo: "reporte final" -> "reporte final.pdf", "a.PDF" -> "a.PDF"
    """
    name = sanitize_filename(filename or "")
    if not name or name.strip(". ") == "":
        name = default
    if not name.lower().endswith(".pdf"):
        name = f"{name}.pdf"
    return name


def percent(part: int, whole: int) -> int:
    """
    Porcentaje entero redondeando las mitades hacia arriba (1/40 -> 3, 1/8 -> 13).
    Aritmética entera: round() de Python redondea las mitades al par.
    """
    if whole <= 0:
        return 100
    return (200 * part + whole) // (2 * whole)


def format_size_mb(size_bytes: int) -> float:
    """Bytes -> megabytes binarios con 2 decimales."""
    return round(size_bytes / (1024 * 1024), 2)


def clean_temp_folder(folder_path: str) -> None:
    """
    Elimina una carpeta temporal y todo su contenido de forma segura.
    """
    if folder_path and os.path.exists(folder_path):
        try:
            shutil.rmtree(folder_path)
            logger.debug("Removed temp folder %s", folder_path)
        except OSError as e:
            logger.warning("Could not remove temp folder %s: %s", folder_path, e)
