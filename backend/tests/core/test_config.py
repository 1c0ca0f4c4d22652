"""Settings - environment parsing and URL normalisation."""

from uuid import UUID

from secret_santa.config import Settings


def test_postgres_url_converted_to_asyncpg():
    settings = Settings(database_url="postgresql://u:p@host:5432/db")
    assert settings.database_url == "postgresql+asyncpg://u:p@host:5432/db"


def test_sqlite_url_untouched():
    settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
    assert settings.database_url == "sqlite+aiosqlite:///:memory:"


def test_identity_settings_from_env(monkeypatch):
    monkeypatch.setenv("IDENTITY_MAX_RETRIES", "5")
    monkeypatch.setenv("DEV_USER_ID", "11111111-1111-1111-1111-111111111111")

    settings = Settings()

    assert settings.identity_max_retries == 5
    assert settings.dev_user_id == UUID("11111111-1111-1111-1111-111111111111")
