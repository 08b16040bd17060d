# pdf_merger/domain/source_list.py
from dataclasses import dataclass, field
from typing import Iterable, List

from pdf_merger.domain.entry import LocalBlob, Origin, SourceEntry, UrlOrigin


@dataclass
class SourceList:
    """
    Lista ordenada de orígenes que el usuario arma antes de un merge.
    El orden de la lista es el orden de páginas del PDF final.
    """
    origins: List[Origin] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.origins)

    def add(self, url: str) -> UrlOrigin:
        url = url.strip()
        if not url:
            raise ValueError("URL cannot be empty")
        origin = UrlOrigin(url)
        self.origins.append(origin)
        return origin

    def append_files(self, blobs: Iterable[LocalBlob]) -> None:
        """Añade archivos locales respetando el orden de selección."""
        self.origins.extend(blobs)

    def remove(self, index: int) -> Origin:
        if not 0 <= index < len(self.origins):
            raise IndexError(f"No source at position {index}")
        return self.origins.pop(index)

    def clear_all(self) -> None:
        self.origins.clear()

    def to_entries(self) -> List[SourceEntry]:
        return [SourceEntry(origin=origin) for origin in self.origins]
