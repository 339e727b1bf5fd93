"""
Unit tests for settings defaults, database URLs and broker URLs.
"""

from docingest.configs.celery_config import CelerySettings
from docingest.configs.database import DatabaseSettings
from docingest.core.document_processing.configs import DocumentPipelineSettings


class TestDocumentPipelineSettings:
    """Test suite for pipeline defaults."""

    def test_defaults(self, monkeypatch):
        for name in (
            "DOC_PIPELINE_CHUNK_SIZE",
            "DOC_PIPELINE_CHUNK_OVERLAP",
            "DOC_PIPELINE_MAX_DOCUMENT_BYTES",
            "DOC_PIPELINE_STATUS_CACHE_MAX_ENTRIES",
            "DOC_PIPELINE_DRAIN_BATCH_SIZE",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = DocumentPipelineSettings(_env_file=None)

        assert settings.chunk_size == 1000
        assert settings.chunk_overlap == 200
        assert settings.max_document_bytes == 10 * 1024 * 1024
        assert settings.similarity_threshold == 0.5
        assert settings.match_count == 5
        assert settings.status_cache_max_entries == 10_000
        assert settings.drain_batch_size == 100

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DOC_PIPELINE_CHUNK_SIZE", "500")
        monkeypatch.setenv("MISTRAL_API_KEY", "from-env")

        settings = DocumentPipelineSettings(_env_file=None)

        assert settings.chunk_size == 500
        assert settings.mistral_api_key == "from-env"


class TestDatabaseSettings:
    """Test suite for async URL derivation."""

    def test_postgres_url_gets_asyncpg_driver(self):
        settings = DatabaseSettings(url="postgres://u:p@db:5432/ingest", _env_file=None)
        assert settings.async_database_url == "postgresql+asyncpg://u:p@db:5432/ingest"

    def test_sqlite_url_is_kept(self):
        settings = DatabaseSettings(url="sqlite+aiosqlite:///./ingest.db", _env_file=None)
        assert settings.async_database_url == "sqlite+aiosqlite:///./ingest.db"

    def test_plain_sqlite_url_gets_aiosqlite_driver(self):
        settings = DatabaseSettings(url="sqlite:///./ingest.db", _env_file=None)
        assert settings.async_database_url == "sqlite+aiosqlite:///./ingest.db"

    def test_parts_with_ssl(self, monkeypatch):
        monkeypatch.delenv("POSTGRES_URL", raising=False)
        settings = DatabaseSettings(host="db", user="u", password="p", db="x", sslmode="require", _env_file=None)
        assert settings.async_database_url == "postgresql+asyncpg://u:p@db:5432/x?ssl=require"


class TestCelerySettings:
    """Test suite for broker URL assembly."""

    def test_urls_built_from_parts(self, monkeypatch):
        monkeypatch.delenv("CELERY_BROKER", raising=False)
        monkeypatch.delenv("CELERY_RESULT_BACKEND", raising=False)

        settings = CelerySettings(broker_host="mq", broker_user="u", broker_password="p", result_backend_db=2)

        assert settings.broker_url == "amqp://u:p@mq:5672//"
        assert settings.result_backend_url == "redis://localhost:6379/2"

    def test_explicit_urls_win(self, monkeypatch):
        monkeypatch.setenv("CELERY_BROKER", "redis://cache:6379/0")

        settings = CelerySettings(broker_host="ignored")

        assert settings.broker_url == "redis://cache:6379/0"
