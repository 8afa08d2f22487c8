"""Unit tests for database/application settings and engine construction."""

import logging

import pytest

from thingstore.core.settings import AppSettings
from thingstore.db.config import Settings
from thingstore.db.session import create_engine, create_session_factory


class TestDatabaseSettings:
    def test_async_url_from_plain_url(self):
        settings = Settings(POSTGRES_URL="postgres://u:p@db:5432/things")
        assert settings.async_database_url == "postgresql+asyncpg://u:p@db:5432/things"

    def test_async_url_from_other_driver(self):
        settings = Settings(POSTGRES_URL="postgresql+psycopg://u:p@db/things")
        assert settings.async_database_url == "postgresql+asyncpg://u:p@db/things"
        assert settings.sync_database_url == "postgresql://u:p@db/things"

    def test_url_from_parts(self, monkeypatch):
        monkeypatch.delenv("POSTGRES_URL", raising=False)
        settings = Settings(
            POSTGRES_USER="u", POSTGRES_PASSWORD="p", POSTGRES_DB="things", POSTGRES_HOST="db"
        )
        assert settings.database_url == "postgresql://u:p@db:5432/things"

    def test_missing_configuration(self, monkeypatch):
        for name in ("POSTGRES_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB"):
            monkeypatch.delenv(name, raising=False)
        with pytest.raises(ValueError):
            Settings(_env_file=None).database_url

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_URL", "postgresql://u:p@db/things")
        monkeypatch.setenv("STATEMENT_TIMEOUT_MS", "2500")
        settings = Settings(_env_file=None)
        assert settings.STATEMENT_TIMEOUT_MS == 2500


class TestEngine:
    @pytest.mark.asyncio
    async def test_engine_uses_asyncpg_and_statement_timeout(self):
        settings = Settings(POSTGRES_URL="postgresql://u:p@db/things", STATEMENT_TIMEOUT_MS=1000, POOL_SIZE=3)
        engine = create_engine(settings)
        try:
            assert engine.url.drivername == "postgresql+asyncpg"
            assert engine.pool.size() == 3
            factory = create_session_factory(engine)
            assert factory.kw["expire_on_commit"] is False
        finally:
            await engine.dispose()


class TestAppSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.LOG_LEVEL == "INFO"
        assert settings.log_level == logging.INFO

    def test_log_level_is_normalized(self):
        assert AppSettings(LOG_LEVEL="debug").log_level == logging.DEBUG
        assert AppSettings(LOG_LEVEL="chatty").LOG_LEVEL == "INFO"
