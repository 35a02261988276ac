from typing import Generator, Optional
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from sqlrepository.settings import settings

_database_options = {
    "pool_pre_ping": True,
    "pool_size": 10,
    "max_overflow": 5,
    "pool_timeout": 30,
    "pool_recycle": 300
}

_SessionLocal: Optional[sessionmaker] = None


def create_db_engine(url: Optional[str] = None, **options) -> Engine:
    url = url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        # in-memory sqlite has to share one connection across the pool
        engine_options = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    else:
        engine_options = dict(_database_options)

    engine_options.update(options)
    return create_engine(url, **engine_options)


def create_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine or create_db_engine())


def get_db() -> Generator[Session, None, None]:
    global _SessionLocal

    if _SessionLocal is None:
        _SessionLocal = create_session_factory()

    db = _SessionLocal()

    try:
        yield db
    except OperationalError:
        db.rollback()
        raise
    finally:
        db.close()
