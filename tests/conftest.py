"""
Shared test fixtures and configuration for entire test suite.

Provides: file-backed SQLite store, deterministic embeddings, a recording
sleep, pipeline settings and a wired service container.

Dependencies: pytest, pytest-asyncio, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

from pathlib import Path

import pytest

from docingest.application.container import ServiceContainer
from docingest.boundary.db import create_tables, get_async_engine, get_async_session_factory
from docingest.configs import Settings
from docingest.core.document_processing.configs import DocumentPipelineSettings
from tests.fakes import KeywordEmbeddings, RecordingDispatcher


@pytest.fixture
def sleeps():
    """Async sleep replacement that records requested delays."""
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    fake_sleep.delays = delays
    return fake_sleep


@pytest.fixture
def pipeline_settings(tmp_path: Path) -> DocumentPipelineSettings:
    """Pipeline settings with no provider credentials and no delays."""
    return DocumentPipelineSettings(
        mistral_api_key="",
        google_api_key="",
        use_token_splitter=False,
        chunk_size=200,
        chunk_overlap=20,
        embedding_batch_delay_seconds=0,
        embedding_max_retries=1,
        status_cache_ttl_seconds=0,
        upload_directory=str(tmp_path / "uploads"),
    )


@pytest.fixture
def settings(pipeline_settings: DocumentPipelineSettings) -> Settings:
    return Settings(pipeline=pipeline_settings)


@pytest.fixture
async def engine(tmp_path: Path):
    """File-backed SQLite engine with all tables created."""
    engine = get_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_async_session_factory(engine)


@pytest.fixture
def embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def container(settings, engine, session_factory, embeddings, dispatcher, sleeps) -> ServiceContainer:
    """Container wired to SQLite, keyword embeddings and a recording dispatcher."""
    return ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        embeddings=embeddings,
        dispatcher=dispatcher,
        sleep=sleeps,
    )
