# tests/test_merge_coordinator.py
"""
Tests del MergeCoordinator con PDFs reales y red simulada.
"""
import asyncio

import httpx
import pytest

from conftest import make_pdf, page_signature, pdf_transport
from pdf_merger.domain.entry import EntryStatus, SourceEntry, UrlOrigin
from pdf_merger.domain.errors import CorruptSourceError, InsufficientInputsError, SerializationFailedError
from pdf_merger.domain.session import MergePhase, MergeSession
from pdf_merger.integrations.streaming_fetcher import StreamingFetcher
from pdf_merger.pdf.pdf_codec import PdfCodec
from pdf_merger.services.merge_coordinator import MergeCoordinator
from pdf_merger.services.progress_reporter import ProgressReporter
from pdf_merger.services.worker_pool import WorkerPool

BASE = "https://pdfs.example.com"


def _session(*paths):
    return MergeSession(entries=[SourceEntry(origin=UrlOrigin(f"{BASE}{p}")) for p in paths])


def _coordinator(transport, listener=None):
    client = httpx.AsyncClient(transport=transport)
    reporter = ProgressReporter(listener)
    pool = WorkerPool(fetcher=StreamingFetcher(client=client), reporter=reporter)
    return MergeCoordinator(pool=pool, reporter=reporter), client


class TestMergeScenarios:

    @pytest.mark.asyncio
    async def test_two_documents_in_input_order(self, pdf_a, pdf_b):
        """Test: A (3 páginas) + B (2 páginas) -> 5 páginas, A antes que B."""
        coordinator, client = _coordinator(pdf_transport({"/a.pdf": pdf_a, "/b.pdf": pdf_b}))
        session = _session("/a.pdf", "/b.pdf")

        async with client:
            output = await coordinator.run(session)

        assert page_signature(output) == [100, 101, 102, 200, 201]
        assert session.phase is MergePhase.DONE
        assert session.aggregate_progress == 100
        assert session.output_buffer == output
        assert session.error is None

    @pytest.mark.asyncio
    async def test_page_count_is_sum_of_sources(self):
        docs = {f"/d{i}.pdf": make_pdf(i, doc_tag=i) for i in range(1, 5)}
        coordinator, client = _coordinator(pdf_transport(docs))
        session = _session(*docs)

        async with client:
            output = await coordinator.run(session, concurrency=2)

        assert len(page_signature(output)) == 1 + 2 + 3 + 4

    @pytest.mark.asyncio
    async def test_order_follows_input_not_completion(self, pdf_a, pdf_b):
        """Test: Aunque B termine primero, las páginas de A van antes."""

        async def handler(request):
            if request.url.path == "/a.pdf":
                await asyncio.sleep(0.05)
                return httpx.Response(200, content=pdf_a)
            return httpx.Response(200, content=pdf_b)

        coordinator, client = _coordinator(httpx.MockTransport(handler))
        session = _session("/a.pdf", "/b.pdf")

        async with client:
            output = await coordinator.run(session, concurrency=2)

        assert page_signature(output) == [100, 101, 102, 200, 201]

    @pytest.mark.asyncio
    async def test_single_success_is_insufficient(self, pdf_a):
        coordinator, client = _coordinator(pdf_transport({"/a.pdf": pdf_a}))
        session = _session("/a.pdf")

        async with client:
            with pytest.raises(InsufficientInputsError):
                await coordinator.run(session)

        assert session.phase is MergePhase.FAILED
        assert isinstance(session.error, InsufficientInputsError)
        assert session.output_buffer is None

    @pytest.mark.asyncio
    async def test_failed_download_leaves_too_few_inputs(self, pdf_a):
        coordinator, client = _coordinator(pdf_transport({"/a.pdf": pdf_a}, statuses={"/b.pdf": 404}))
        session = _session("/a.pdf", "/b.pdf")

        async with client:
            with pytest.raises(InsufficientInputsError):
                await coordinator.run(session)

        assert session.entries[0].status is EntryStatus.SUCCESS
        assert session.entries[1].status is EntryStatus.FAILED
        assert session.entries[1].error_reason == "HTTP 404"
        # las descargas exitosas quedan disponibles para reintentar
        assert session.entries[0].payload == pdf_a

    @pytest.mark.asyncio
    async def test_failed_entries_are_skipped_when_enough_succeed(self, pdf_a, pdf_b):
        coordinator, client = _coordinator(
            pdf_transport({"/a.pdf": pdf_a, "/c.pdf": pdf_b}, statuses={"/b.pdf": 500})
        )
        session = _session("/a.pdf", "/b.pdf", "/c.pdf")

        async with client:
            output = await coordinator.run(session)

        assert page_signature(output) == [100, 101, 102, 200, 201]
        assert session.entries[1].status is EntryStatus.FAILED

    @pytest.mark.asyncio
    async def test_corrupt_bytes_fail_the_merge(self, pdf_a):
        """Test: Bytes descargados pero malformados -> CorruptSourceError(B)."""
        coordinator, client = _coordinator(
            pdf_transport({"/a.pdf": pdf_a, "/b.pdf": b"this is definitely not a pdf"})
        )
        session = _session("/a.pdf", "/b.pdf")

        async with client:
            with pytest.raises(CorruptSourceError) as exc_info:
                await coordinator.run(session)

        assert exc_info.value.origin_id == f"{BASE}/b.pdf"
        assert session.phase is MergePhase.FAILED
        assert session.output_buffer is None
        assert session.entries[1].status is EntryStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_serialization_failure(self, pdf_a, pdf_b):
        class BrokenSaveCodec(PdfCodec):
            def save_document(self, destination):
                raise OSError("disk full")

        transport = pdf_transport({"/a.pdf": pdf_a, "/b.pdf": pdf_b})
        client = httpx.AsyncClient(transport=transport)
        coordinator = MergeCoordinator(
            pool=WorkerPool(fetcher=StreamingFetcher(client=client)),
            codec=BrokenSaveCodec(),
        )
        session = _session("/a.pdf", "/b.pdf")

        async with client:
            with pytest.raises(SerializationFailedError):
                await coordinator.run(session)

        assert session.phase is MergePhase.FAILED
        assert session.output_buffer is None


class TestMergeProgress:

    @pytest.mark.asyncio
    async def test_progress_events_are_bounded_integers(self, pdf_a, pdf_b, pdf_c):
        events = []
        coordinator, client = _coordinator(
            pdf_transport({"/a.pdf": pdf_a, "/b.pdf": pdf_b, "/c.pdf": pdf_c}), events.append
        )
        session = _session("/a.pdf", "/b.pdf", "/c.pdf")

        async with client:
            await coordinator.run(session, concurrency=2)

        assert events
        assert all(isinstance(e.progress, int) and 0 <= e.progress <= 100 for e in events)

        merging = [e.progress for e in events if e.kind == "session" and e.phase == "merging"]
        assert merging == [0, 33, 67, 100]

        downloading = [e.progress for e in events if e.kind == "session" and e.phase == "downloading"]
        assert downloading[-1] == 100
        assert downloading == sorted(downloading)

        assert events[-1].phase == "done"
        assert events[-1].progress == 100

    @pytest.mark.asyncio
    async def test_merge_progress_rounds_half_up(self):
        """Test: Con 8 documentos el progreso de merge redondea las mitades hacia arriba."""
        events = []
        routes = {f"/{i}.pdf": make_pdf(1, doc_tag=i) for i in range(1, 9)}
        coordinator, client = _coordinator(pdf_transport(routes), events.append)
        session = _session(*routes)

        async with client:
            await coordinator.run(session, concurrency=4)

        merging = [e.progress for e in events if e.kind == "session" and e.phase == "merging"]
        assert merging == [0, 13, 25, 38, 50, 63, 75, 88, 100]

    @pytest.mark.asyncio
    async def test_entry_progress_is_monotonic_with_known_length(self, pdf_a, pdf_b):
        events = []
        coordinator, client = _coordinator(pdf_transport({"/a.pdf": pdf_a, "/b.pdf": pdf_b}), events.append)
        session = _session("/a.pdf", "/b.pdf")

        async with client:
            await coordinator.run(session)

        for index in (0, 1):
            values = [e.progress for e in events if e.kind == "entry" and e.index == index]
            assert values == sorted(values)
            assert values[-1] == 100


class TestRetry:

    @pytest.mark.asyncio
    async def test_retry_only_refetches_failed_entries(self, pdf_a, pdf_b):
        hits = {"/a.pdf": 0, "/b.pdf": 0}
        available = {"/b.pdf": False}

        def handler(request):
            path = request.url.path
            hits[path] += 1
            if path == "/b.pdf" and not available["/b.pdf"]:
                return httpx.Response(503)
            return httpx.Response(200, content=pdf_a if path == "/a.pdf" else pdf_b)

        coordinator, client = _coordinator(httpx.MockTransport(handler))
        session = _session("/a.pdf", "/b.pdf")

        async with client:
            with pytest.raises(InsufficientInputsError):
                await coordinator.run(session)

            available["/b.pdf"] = True
            session.rewind()
            output = await coordinator.run(session, retry_indices=[1])

        assert hits == {"/a.pdf": 1, "/b.pdf": 2}
        assert page_signature(output) == [100, 101, 102, 200, 201]
        assert session.phase is MergePhase.DONE

    @pytest.mark.asyncio
    async def test_finished_session_must_be_rewound(self, pdf_a, pdf_b):
        coordinator, client = _coordinator(pdf_transport({"/a.pdf": pdf_a, "/b.pdf": pdf_b}))
        session = _session("/a.pdf", "/b.pdf")

        async with client:
            await coordinator.run(session)
            with pytest.raises(ValueError):
                await coordinator.run(session)

    @pytest.mark.asyncio
    async def test_retry_index_out_of_range(self):
        coordinator = MergeCoordinator()
        session = _session("/a.pdf", "/b.pdf")

        with pytest.raises(IndexError):
            await coordinator.run(session, retry_indices=[5])

        assert session.phase is MergePhase.IDLE


class TestConcurrencyArgument:

    @pytest.mark.asyncio
    async def test_zero_concurrency_is_rejected(self):
        """Test: concurrency=0 es inválido, no se reemplaza por el default."""
        coordinator = MergeCoordinator(default_concurrency=5)
        session = _session("/a.pdf", "/b.pdf")

        with pytest.raises(ValueError):
            await coordinator.run(session, concurrency=0)

        assert session.phase is MergePhase.IDLE
