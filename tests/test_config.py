"""Tests for settings and database URL handling."""

from matchcast.config import Settings
from matchcast.database import get_database_url


class TestDatabaseUrl:

    def test_sqlite_uses_aiosqlite(self):
        assert get_database_url("sqlite:///./data/x.db") == "sqlite+aiosqlite:///./data/x.db"

    def test_postgres_uses_asyncpg(self):
        assert get_database_url("postgres://u:p@db/x") == "postgresql+asyncpg://u:p@db/x"
        assert get_database_url("postgresql://u:p@db/x") == "postgresql+asyncpg://u:p@db/x"

    def test_async_url_untouched(self):
        assert get_database_url("sqlite+aiosqlite:///:memory:") == "sqlite+aiosqlite:///:memory:"


class TestSettings:

    def test_generators_disabled_by_default(self):
        settings = Settings(_env_file=None, LLAMA_SERVER_URL=None, OLLAMA_MODEL=None)
        assert not settings.LLAMA_SERVER_URL
        assert not settings.OLLAMA_MODEL
        assert settings.LLAMA_MAX_TOKENS == 256

    def test_basketball_key_falls_back_to_football_key(self):
        settings = Settings(_env_file=None, API_FOOTBALL_KEY="abc", API_BASKETBALL_KEY="")
        assert settings.basketball_api_key == "abc"
        settings = Settings(_env_file=None, API_FOOTBALL_KEY="abc", API_BASKETBALL_KEY="xyz")
        assert settings.basketball_api_key == "xyz"
