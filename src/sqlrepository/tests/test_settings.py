"""
Test environment driven configuration and session helpers.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from sqlrepository.database import create_db_engine, create_session_factory, get_db
from sqlrepository.settings import RepositorySettings, settings


@pytest.fixture
def reload_settings(monkeypatch):
    """Re-read the environment into the settings singleton, restoring it afterwards."""
    yield RepositorySettings
    monkeypatch.undo()
    RepositorySettings()


@pytest.mark.unit
class TestSettings:

    def test_singleton(self):
        assert RepositorySettings() is settings

    def test_defaults(self, reload_settings, monkeypatch):
        for name in ("DATABASE_URL", "REPOSITORY_PER_PAGE", "REPOSITORY_PAGE_NAME",
                     "REPOSITORY_RANDOM_LIMIT", "REPOSITORY_RANDOM_FUNCTION", "REPOSITORY_AUTOCOMMIT"):
            monkeypatch.delenv(name, raising=False)

        reload_settings()

        assert settings.DATABASE_URL == "sqlite://"
        assert settings.REPOSITORY_PER_PAGE == 15
        assert settings.REPOSITORY_PAGE_NAME == "page"
        assert settings.REPOSITORY_RANDOM_LIMIT == 15
        assert settings.REPOSITORY_RANDOM_FUNCTION == "random"
        assert settings.REPOSITORY_AUTOCOMMIT is True

    def test_environment_overrides(self, reload_settings, monkeypatch):
        monkeypatch.setenv("REPOSITORY_PER_PAGE", "50")
        monkeypatch.setenv("REPOSITORY_PAGE_NAME", "p")
        monkeypatch.setenv("REPOSITORY_AUTOCOMMIT", "off")

        reload_settings()

        assert settings.REPOSITORY_PER_PAGE == 50
        assert settings.REPOSITORY_PAGE_NAME == "p"
        assert settings.REPOSITORY_AUTOCOMMIT is False


@pytest.mark.unit
class TestDatabase:

    def test_sqlite_engine_shares_connection(self):
        engine = create_db_engine("sqlite://")
        with engine.connect() as connection:
            connection.execute(text("CREATE TABLE probe (id INTEGER)"))
            connection.commit()
        with engine.connect() as connection:
            assert connection.execute(text("SELECT count(*) FROM probe")).scalar() == 0
        engine.dispose()

    def test_session_factory(self, engine):
        session = create_session_factory(engine)()
        try:
            assert isinstance(session, Session)
            assert session.execute(text("SELECT 1")).scalar() == 1
        finally:
            session.close()

    def test_get_db(self):
        generator = get_db()
        db = next(generator)
        assert isinstance(db, Session)
        generator.close()
