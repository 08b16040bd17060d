# pdf_merger/config/settings.py
import os
import tempfile
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PDF_MERGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(
        default="pdf-merge-service",
        description="Service name for FastAPI.",
    )

    # Adquisición
    default_concurrency: int = Field(
        default=5,
        ge=1,
        description="Número máximo de descargas simultáneas por sesión.",
    )
    fetch_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Timeout en segundos por request. None = sin timeout (una descarga colgada ocupa su worker).",
    )
    chunk_size: Optional[int] = Field(
        default=None,
        gt=0,
        description="Tamaño de chunk al leer el body. None = el que entregue el transporte.",
    )

    # Salida
    default_output_filename: str = Field(
        default="merged.pdf",
        description="Nombre por defecto del PDF unido al descargarlo.",
    )

    # Sesiones
    max_finished_sessions: int = Field(
        default=20,
        ge=1,
        description="Sesiones terminadas (done/failed) que se conservan en memoria antes de descartar las más viejas.",
    )

    # Storage
    temp_dir: str = Field(
        default=os.path.join(tempfile.gettempdir(), "pdf_merge"),
        description="Directorio donde se guardan temporalmente los archivos subidos.",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
