"""
Tests for the HTTP API with a mocked IngestionService.

Tests status code mapping for submission, polling, query, maintenance and
job endpoints.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from docingest.api.deps import get_ingestion_service
from docingest.api.main import create_app
from docingest.application.services import DocumentStatusView
from docingest.boundary.db.models import JobStatus, ProcessingStage
from docingest.boundary.vdb import ChunkMatch, RepairReport
from docingest.core.exceptions import (
    ChunkStoreError,
    JobNotFoundError,
    RetrievalError,
    SizeLimitExceeded,
    UnsupportedDocumentType,
    ValidationError,
)
from docingest.core.job_tracker import JobSnapshot

DOC_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
JOB_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")


@pytest.fixture
def mock_service():
    service = MagicMock()
    service.submit = AsyncMock(return_value=JOB_ID)
    service.get_status = AsyncMock()
    service.query = AsyncMock()
    service.repair = AsyncMock()
    service.get_job = AsyncMock()
    service.delete_document = AsyncMock(return_value=True)
    service.drain_queued = AsyncMock(return_value=[])
    return service


@pytest.fixture
def client(mock_service):
    app = create_app()
    app.dependency_overrides[get_ingestion_service] = lambda: mock_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestIngestEndpoints:
    """Test suite for POST /documents/{id}/ingest and /ingest-ref."""

    def test_upload_is_accepted(self, client, mock_service):
        # Act
        response = client.post(
            f"/api/v1/documents/{DOC_ID}/ingest",
            files={"file": ("manual.txt", b"Reset the device.", "text/plain")},
            data={"chunk_size": "500"},
        )

        # Assert
        assert response.status_code == 202
        assert response.json() == {"job_id": str(JOB_ID), "document_id": str(DOC_ID), "status": "queued"}
        args, kwargs = mock_service.submit.await_args
        assert args == (DOC_ID, b"Reset the device.")
        assert kwargs["filename"] == "manual.txt"
        assert kwargs["chunk_size"] == 500

    @pytest.mark.parametrize(
        "error,expected",
        [
            (SizeLimitExceeded(11 * 1024 * 1024, 10 * 1024 * 1024), 413),
            (UnsupportedDocumentType("deck.pptx", (".pdf",)), 415),
            (ValidationError("chunk_size must be positive", field="chunk_size"), 400),
        ],
    )
    def test_validation_errors_map_to_status(self, client, mock_service, error, expected):
        mock_service.submit.side_effect = error

        response = client.post(
            f"/api/v1/documents/{DOC_ID}/ingest",
            files={"file": ("deck.pptx", b"data", "application/octet-stream")},
        )

        assert response.status_code == expected
        assert response.json()["detail"]["message"] == error.message

    def test_reference_is_accepted(self, client, mock_service):
        response = client.post(
            f"/api/v1/documents/{DOC_ID}/ingest-ref",
            json={"source_ref": "s3://bucket/manuals/manual.pdf"},
        )

        assert response.status_code == 202
        assert mock_service.submit.await_args.args == (DOC_ID, "s3://bucket/manuals/manual.pdf")

    def test_invalid_document_id_is_422(self, client):
        response = client.post(
            "/api/v1/documents/not-a-uuid/ingest",
            files={"file": ("a.txt", b"x", "text/plain")},
        )
        assert response.status_code == 422


class TestStatusAndDelete:
    """Test suite for GET /documents/{id}/status and DELETE /documents/{id}."""

    def test_status_is_returned(self, client, mock_service):
        mock_service.get_status.return_value = DocumentStatusView(
            document_id=DOC_ID, status="embedding", progress_percent=40, processed_chunks=4, total_chunks=10
        )

        response = client.get(f"/api/v1/documents/{DOC_ID}/status")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "embedding"
        assert body["progress_percent"] == 40

    def test_delete_missing_document_is_404(self, client, mock_service):
        mock_service.delete_document.return_value = False

        response = client.delete(f"/api/v1/documents/{DOC_ID}")

        assert response.status_code == 404

    def test_delete_existing_document_is_204(self, client):
        assert client.delete(f"/api/v1/documents/{DOC_ID}").status_code == 204


class TestQueryEndpoint:
    """Test suite for POST /query."""

    def test_matches_are_returned(self, client, mock_service):
        mock_service.query.return_value = [
            ChunkMatch(document_id=DOC_ID, chunk_hash="a" * 64, content="Refunds within 30 days.", similarity=0.9)
        ]

        response = client.post("/api/v1/query", json={"query": "refund policy", "count": 3})

        assert response.status_code == 200
        assert response.json()["matches"][0]["content"] == "Refunds within 30 days."
        assert mock_service.query.await_args.kwargs["count"] == 3

    def test_formatted_context_is_returned(self, client, mock_service):
        mock_service.query.return_value = "RELEVANT PRODUCT DOCUMENTATION:\n\n"

        response = client.post("/api/v1/query", json={"query": "refund", "format_for_prompt": True})

        assert response.json() == {"matches": [], "context": "RELEVANT PRODUCT DOCUMENTATION:\n\n"}

    def test_retrieval_failure_is_503(self, client, mock_service):
        mock_service.query.side_effect = RetrievalError("Query failed: provider down")

        response = client.post("/api/v1/query", json={"query": "refund"})

        assert response.status_code == 503

    def test_empty_query_is_422(self, client):
        assert client.post("/api/v1/query", json={"query": ""}).status_code == 422


class TestMaintenanceAndJobs:
    """Test suite for POST /maintenance/repair, POST /maintenance/drain and GET /jobs/{id}."""

    def test_repair_without_body(self, client, mock_service):
        mock_service.repair.return_value = RepairReport(attempted=2, repaired=2, passes=1)

        response = client.post("/api/v1/maintenance/repair")

        assert response.status_code == 200
        assert response.json()["repaired"] == 2
        mock_service.repair.assert_awaited_once_with(batch_size=None, sweep=False)

    def test_repair_sweep(self, client, mock_service):
        mock_service.repair.return_value = RepairReport()

        client.post("/api/v1/maintenance/repair", json={"batch_size": 10, "sweep": True})

        mock_service.repair.assert_awaited_once_with(batch_size=10, sweep=True)

    def test_repair_store_failure_is_503(self, client, mock_service):
        mock_service.repair.side_effect = ChunkStoreError("Repair requires an embedding provider", operation="repair")

        assert client.post("/api/v1/maintenance/repair").status_code == 503

    def test_drain_reports_dispatched_jobs(self, client, mock_service):
        mock_service.drain_queued.return_value = [JOB_ID]

        response = client.post("/api/v1/maintenance/drain", json={"limit": 5})

        assert response.status_code == 200
        assert response.json() == {"dispatched": 1, "job_ids": [str(JOB_ID)]}
        mock_service.drain_queued.assert_awaited_once_with(limit=5)

    def test_drain_store_failure_is_503(self, client, mock_service):
        mock_service.drain_queued.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        assert client.post("/api/v1/maintenance/drain").status_code == 503
        mock_service.drain_queued.assert_awaited_once_with(limit=None)

    def test_job_is_returned(self, client, mock_service):
        now = datetime.now(timezone.utc)
        mock_service.get_job.return_value = JobSnapshot(
            id=JOB_ID,
            document_id=DOC_ID,
            source_ref="/tmp/manual.pdf",
            status=JobStatus.PROCESSING,
            stage=ProcessingStage.EMBEDDING,
            processed_chunks=4,
            total_chunks=10,
            progress_percent=40,
            chunk_size=1000,
            chunk_overlap=200,
            created_at=now,
            updated_at=now,
        )

        response = client.get(f"/api/v1/jobs/{JOB_ID}")

        assert response.status_code == 200
        assert response.json()["stage"] == "embedding"
        assert response.json()["progress_percent"] == 40

    def test_unknown_job_is_404(self, client, mock_service):
        mock_service.get_job.side_effect = JobNotFoundError(str(JOB_ID))

        assert client.get(f"/api/v1/jobs/{JOB_ID}").status_code == 404


class TestHealth:
    """Test suite for GET /health."""

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Correlation-ID" in response.headers
