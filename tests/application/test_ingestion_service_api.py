"""
Tests for IngestionService: synchronous validation, dispatch, status
polling with its cache, query, repair and queued-job draining.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from docingest.application.services import IngestionService
from docingest.core.exceptions import SizeLimitExceeded, UnsupportedDocumentType, ValidationError
from docingest.core.retriever import NO_MATCHES_SENTINEL

MB = 1024 * 1024


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestSubmit:
    """Test suite for submission validation and dispatch."""

    async def test_submit_queues_and_dispatches(self, container, dispatcher):
        # Arrange
        document_id = uuid.uuid4()

        # Act
        job_id = await container.ingestion_service.submit(document_id, b"Reset the device.", filename="reset.txt")

        # Assert
        assert dispatcher.enqueued == [job_id]
        status = await container.ingestion_service.get_status(document_id)
        assert status.status == "queued"
        assert status.exists
        assert status.job_id == job_id

    async def test_oversize_upload_rejected_before_any_job(self, container, dispatcher, tmp_path):
        # Arrange
        document_id = uuid.uuid4()
        data = b"x" * (11 * MB)

        # Act / Assert
        with pytest.raises(SizeLimitExceeded):
            await container.ingestion_service.submit(document_id, data, filename="big.pdf")
        assert await container.tracker.get_document(document_id) is None
        assert dispatcher.enqueued == []
        assert not (tmp_path / "uploads" / str(document_id)).exists()

    async def test_upload_at_limit_is_accepted(self, container, dispatcher):
        job_id = await container.ingestion_service.submit(uuid.uuid4(), b"x" * (10 * MB), filename="big.txt")
        assert dispatcher.enqueued == [job_id]

    async def test_unsupported_type_rejected(self, container):
        with pytest.raises(UnsupportedDocumentType):
            await container.ingestion_service.submit(uuid.uuid4(), b"data", filename="deck.pptx")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"filename": None},
            {"filename": "a.txt", "chunk_size": 0},
            {"filename": "a.txt", "overlap": -1},
        ],
    )
    async def test_invalid_parameters_rejected(self, container, dispatcher, kwargs):
        with pytest.raises(ValidationError):
            await container.ingestion_service.submit(uuid.uuid4(), b"data", **kwargs)
        assert dispatcher.enqueued == []

    async def test_reference_source_keeps_path(self, container, tmp_path):
        # Arrange
        source = tmp_path / "guide.md"
        source.write_text("# Guide\nCharge the battery.")
        document_id = uuid.uuid4()

        # Act
        job_id = await container.ingestion_service.submit(document_id, str(source))

        # Assert
        job = await container.tracker.get_job(job_id)
        assert job.source_ref == str(source)
        document = await container.tracker.get_document(document_id)
        assert document.name == "guide.md"

    async def test_resubmitting_queued_document_reuses_job(self, container, dispatcher):
        document_id = uuid.uuid4()

        first = await container.ingestion_service.submit(document_id, b"one", filename="a.txt")
        second = await container.ingestion_service.submit(document_id, b"two", filename="a.txt", chunk_size=300)

        assert first == second
        assert (await container.tracker.get_job(first)).chunk_size == 300

    async def test_superseded_upload_is_removed(self, container, tmp_path):
        # Arrange
        document_id = uuid.uuid4()
        upload_dir = tmp_path / "uploads" / str(document_id)
        await container.ingestion_service.submit(document_id, b"one", filename="a.txt")

        # Act
        job_id = await container.ingestion_service.submit(document_id, b"two", filename="a.txt")

        # Assert
        job = await container.tracker.get_job(job_id)
        stored = list(upload_dir.iterdir())
        assert len(stored) == 1
        assert str(stored[0].resolve()) == job.source_ref
        assert stored[0].read_bytes() == b"two"

    async def test_upload_for_processing_document_is_discarded(self, container, tmp_path):
        # Arrange
        document_id = uuid.uuid4()
        job_id = await container.ingestion_service.submit(document_id, b"running", filename="a.txt")
        await container.tracker.start(job_id)

        # Act
        again = await container.ingestion_service.submit(document_id, b"late", filename="a.txt")

        # Assert
        assert again == job_id
        stored = list((tmp_path / "uploads" / str(document_id)).iterdir())
        assert [path.read_bytes() for path in stored] == [b"running"]


class TestGetStatus:
    """Test suite for status polling."""

    async def test_unknown_document_is_pending(self, container):
        status = await container.ingestion_service.get_status(uuid.uuid4())

        assert status.status == "pending"
        assert status.exists is False
        assert status.progress_percent == 0

    async def test_ready_document_reports_chunks(self, container):
        document_id = uuid.uuid4()
        job_id = await container.ingestion_service.submit(document_id, b"Page one\fPage two", filename="two.txt")
        await container.pipeline.process_job(job_id)

        status = await container.ingestion_service.get_status(document_id)

        assert status.status == "ready"
        assert status.chunk_count == 2
        assert status.progress_percent == 100
        assert status.job_status == "completed"

    async def test_status_is_cached_until_ttl_or_submit(self, container):
        # Arrange
        clock = FakeClock()
        service = IngestionService(
            settings=container.settings.pipeline.model_copy(update={"status_cache_ttl_seconds": 5}),
            tracker=container.tracker,
            chunk_store=container.chunk_store,
            retriever=container.retriever,
            source_fetch=container.source_fetch,
            dispatcher=container.dispatcher,
            clock=clock,
        )
        document_id = uuid.uuid4()
        job_id = await service.submit(document_id, b"Cached page", filename="c.txt")
        assert (await service.get_status(document_id)).status == "queued"

        # Act
        await container.pipeline.process_job(job_id)
        cached = await service.get_status(document_id)
        clock.now = 5.0
        fresh = await service.get_status(document_id)

        # Assert
        assert cached.status == "queued"
        assert fresh.status == "ready"

    async def test_cached_view_cannot_be_mutated_by_callers(self, container):
        service = IngestionService(
            settings=container.settings.pipeline.model_copy(update={"status_cache_ttl_seconds": 60}),
            tracker=container.tracker,
            chunk_store=container.chunk_store,
            retriever=container.retriever,
            source_fetch=container.source_fetch,
            dispatcher=container.dispatcher,
            clock=FakeClock(),
        )
        document_id = uuid.uuid4()
        await service.submit(document_id, b"Cached page", filename="c.txt")

        first = await service.get_status(document_id)
        first.status = "ready"
        second = await service.get_status(document_id)
        second.chunk_count = 99

        third = await service.get_status(document_id)
        assert third.status == "queued"
        assert third.chunk_count == 0

    async def test_store_failure_reports_error(self, container):
        tracker = MagicMock()
        tracker.get_document = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down")))
        service = IngestionService(
            settings=container.settings.pipeline,
            tracker=tracker,
            chunk_store=container.chunk_store,
            retriever=container.retriever,
            source_fetch=container.source_fetch,
            dispatcher=container.dispatcher,
        )

        status = await service.get_status(uuid.uuid4())

        assert status.status == "error"
        assert status.error


class TestQueryAndRepair:
    """Test suite for retrieval and repair through the service."""

    async def test_refund_policy_query_returns_single_match(self, container):
        # Arrange
        document_id = uuid.uuid4()
        job_id = await container.ingestion_service.submit(
            document_id,
            b"Our refund policy allows returns within 30 days."
            b"\fShipping takes five business days."
            b"\fWarranty covers manufacturing defects for one year.",
            filename="policies.txt",
        )
        await container.pipeline.process_job(job_id)

        # Act
        matches = await container.ingestion_service.query("What is the refund policy?", threshold=0.5)

        # Assert
        assert len(matches) == 1
        assert matches[0].content == "Our refund policy allows returns within 30 days."
        assert matches[0].document_id == document_id
        assert matches[0].similarity >= 0.5

    async def test_formatted_query_without_matches_returns_sentinel(self, container):
        block = await container.ingestion_service.query("refund policy", format_for_prompt=True)
        assert block == NO_MATCHES_SENTINEL

    async def test_repair_sweep_fills_incomplete_chunks(self, container):
        # Arrange
        document_id = uuid.uuid4()
        job_id = await container.ingestion_service.submit(document_id, b"Battery page", filename="b.txt")
        await container.tracker.start(job_id)
        await container.chunk_store.upsert_chunk(document_id, "Battery page", "h" * 64, None, (0, 3))

        # Act
        report = await container.ingestion_service.repair(sweep=True)

        # Assert
        assert report.repaired == 1
        assert report.remaining == 0

    async def test_delete_document(self, container, tmp_path):
        document_id = uuid.uuid4()
        job_id = await container.ingestion_service.submit(document_id, b"Delete me", filename="d.txt")
        await container.pipeline.process_job(job_id)

        assert await container.ingestion_service.delete_document(document_id) is True
        assert not (tmp_path / "uploads" / str(document_id)).exists()
        status = await container.ingestion_service.get_status(document_id)
        assert status.exists is False


class TestDrainQueued:
    """Test suite for re-dispatching jobs left QUEUED in the store."""

    async def test_queued_jobs_are_redispatched_oldest_first(self, container, dispatcher):
        # Arrange
        first = await container.ingestion_service.submit(uuid.uuid4(), b"one", filename="a.txt")
        second = await container.ingestion_service.submit(uuid.uuid4(), b"two", filename="b.txt")
        dispatcher.enqueued.clear()

        # Act
        drained = await container.ingestion_service.drain_queued()

        # Assert
        assert drained == [first, second]
        assert dispatcher.enqueued == [first, second]

    async def test_started_and_finished_jobs_are_not_redispatched(self, container, dispatcher):
        # Arrange
        done = await container.ingestion_service.submit(uuid.uuid4(), b"done", filename="a.txt")
        await container.pipeline.process_job(done)
        running = await container.ingestion_service.submit(uuid.uuid4(), b"running", filename="b.txt")
        await container.tracker.start(running)
        waiting = await container.ingestion_service.submit(uuid.uuid4(), b"waiting", filename="c.txt")
        dispatcher.enqueued.clear()

        # Act
        drained = await container.ingestion_service.drain_queued()

        # Assert
        assert drained == [waiting]

    async def test_limit_bounds_the_drain(self, container, dispatcher):
        first = await container.ingestion_service.submit(uuid.uuid4(), b"one", filename="a.txt")
        await container.ingestion_service.submit(uuid.uuid4(), b"two", filename="b.txt")
        dispatcher.enqueued.clear()

        assert await container.ingestion_service.drain_queued(limit=1) == [first]
        assert dispatcher.enqueued == [first]

    async def test_redispatched_job_runs_once(self, container):
        job_id = await container.ingestion_service.submit(uuid.uuid4(), b"Reset the device.", filename="r.txt")
        await container.ingestion_service.drain_queued()

        first = await container.pipeline.process_job(job_id)
        second = await container.pipeline.process_job(job_id)

        assert first.status == "completed"
        assert second.status == "skipped"

    async def test_startup_resumes_queued_jobs(self, container, dispatcher):
        # Arrange
        job_id = await container.ingestion_service.submit(uuid.uuid4(), b"left over", filename="a.txt")
        dispatcher.enqueued.clear()

        # Act
        await container.startup()

        # Assert
        assert dispatcher.enqueued == [job_id]
