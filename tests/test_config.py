from __future__ import annotations

import pytest
from pydantic import ValidationError

from kitchen_command.config import Settings
from kitchen_command.database import create_engine, create_session_factory


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RECORD_STORE_URL", "http://store.local:9000/")
    monkeypatch.setenv("REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("SYNC_MAX_ATTEMPTS", "5")

    settings = Settings()

    assert settings.record_store_url == "http://store.local:9000"
    assert settings.request_timeout == 2.5
    assert settings.sync_max_attempts == 5


def test_settings_reject_malformed_sqlite_url() -> None:
    with pytest.raises(ValidationError):
        Settings(database_url="sqlite+aiosqlite:relative.db")


def test_settings_reject_non_positive_timeout() -> None:
    with pytest.raises(ValidationError):
        Settings(request_timeout=0)


async def test_engine_follows_settings(tmp_path) -> None:
    db_path = tmp_path / "store.db"
    engine = create_engine(Settings(database_url=f"sqlite+aiosqlite:///{db_path}", echo_sql=True))
    try:
        assert engine.url.database == str(db_path)
        assert engine.echo is True
        async with create_session_factory(engine)() as session:
            assert session.sync_session.expire_on_commit is False
    finally:
        await engine.dispose()
