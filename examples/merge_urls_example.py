# examples/merge_urls_example.py
"""
Ejemplo de uso directo del pipeline (sin FastAPI): descarga varias URLs,
las une en el orden dado y guarda el resultado.

Uso:
    python examples/merge_urls_example.py salida.pdf https://.../a.pdf https://.../b.pdf
"""
import asyncio
import sys

from pdf_merger.domain.errors import MergeError
from pdf_merger.domain.session import MergeSession
from pdf_merger.domain.source_list import SourceList
from pdf_merger.services.merge_coordinator import MergeCoordinator
from pdf_merger.services.progress_reporter import ProgressEvent, ProgressReporter
from pdf_merger.utils.helpers import ensure_pdf_extension


def print_event(event: ProgressEvent) -> None:
    if event.kind == "session":
        print(f"[{event.phase}] {event.progress}% {event.detail or ''}")
    elif event.status in ("success", "failed"):
        print(f"  entrada {event.index}: {event.status} {event.detail or ''}")


async def main(output_path: str, urls: list) -> int:
    sources = SourceList()
    for url in urls:
        sources.add(url)

    session = MergeSession(entries=sources.to_entries())
    coordinator = MergeCoordinator(reporter=ProgressReporter(print_event))

    try:
        output = await coordinator.run(session, concurrency=3)
    except MergeError as e:
        print(f"Merge falló: {e}")
        return 1

    output_file = ensure_pdf_extension(output_path)
    with open(output_file, "wb") as fh:
        fh.write(output)
    print(f"PDF guardado en {output_file} ({len(output)} bytes)")
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 4:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1], sys.argv[2:])))
