"""
Pytest configuration and fixtures for all tests.
"""

import pytest
from sqlalchemy.orm import Session

from sqlrepository.database import create_db_engine, create_session_factory
from sqlrepository.tests.fixtures import ActiveUserRepository, UserRepository
from sqlrepository.tests.models import Base, Comment, Post, User


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine with all tables."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    """Create a new database session for a test."""
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def users(db):
    """Seed five users, keyed by name."""
    rows = [
        User(name="alice", email="alice@example.org", age=34, active=True, role="admin"),
        User(name="bob", email="bob@example.org", age=17, active=True),
        User(name="carol", email="carol@example.org", age=25, active=False),
        User(name="dave", email="dave@example.org", age=41, active=True),
        User(name="erin", email="erin@example.org", age=19, active=False),
    ]
    db.add_all(rows)
    db.flush()

    alice = rows[0]
    post = Post(title="Hello", author=alice)
    post.comments.append(Comment(body="First"))
    db.add(post)
    db.commit()

    return {user.name: user for user in rows}


@pytest.fixture
def repository(db):
    return UserRepository(db)


@pytest.fixture
def active_repository(db):
    return ActiveUserRepository(db)