"""Pytest fixtures: in-memory SQLite store, API client and content factories."""

import os
from datetime import datetime, timedelta, timezone

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["REDIS_URL"] = "redis://localhost:6399/15"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["RATE_LIMIT_PER_HOUR"] = "1000000"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Book, Chapter, Question, Reel, User  # noqa: E402
from app.utils.cache import cache_service  # noqa: E402
from app.utils.security import create_access_token, hash_password  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeRedis:
    """Minimal stand-in for the redis client used by CacheService"""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        self.store.pop(key, None)
        self.ttls.pop(key, None)


@pytest.fixture
def db():
    """Fresh schema per test on the shared in-memory engine"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache_service, "_client", fake)
    monkeypatch.setattr(cache_service, "_connected", True)
    return fake


@pytest.fixture
def make_book(db):
    counter = {"n": 0}

    def factory(title=None, tags=None, author="Author", minutes=0, **kwargs):
        counter["n"] += 1
        book = Book(
            title=title or f"Book {counter['n']}",
            author=author,
            tags=tags or [],
            created_at=BASE_TIME + timedelta(minutes=minutes or counter["n"]),
            **kwargs
        )
        db.add(book)
        db.commit()
        db.refresh(book)
        return book

    return factory


@pytest.fixture
def make_chapter(db):
    counter = {"n": 0}

    def factory(book, duration="100", title=None):
        counter["n"] += 1
        chapter = Chapter(
            book_id=book.id,
            title=title or f"Chapter {counter['n']}",
            duration=duration,
            created_at=BASE_TIME + timedelta(minutes=counter["n"])
        )
        db.add(chapter)
        db.commit()
        db.refresh(chapter)
        return chapter

    return factory


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def factory(email=None, password="secret-pass", status=True, chosen_tags=None):
        counter["n"] += 1
        user = User(
            full_name=f"User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            phone="+15550000000",
            password_hash=hash_password(password),
            status=status,
            chosen_tags=chosen_tags or []
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture
def make_question(db):
    counter = {"n": 0}

    def factory(options, title=None, order=None):
        counter["n"] += 1
        question = Question(
            title=title or f"Question {counter['n']}",
            type="multiple",
            options=options,
            order=order if order is not None else counter["n"],
            created_at=BASE_TIME + timedelta(minutes=counter["n"])
        )
        db.add(question)
        db.commit()
        db.refresh(question)
        return question

    return factory


@pytest.fixture
def make_reel(db):
    counter = {"n": 0}

    def factory(tags=None, minutes=None, active=True):
        counter["n"] += 1
        reel = Reel(
            title=f"Reel {counter['n']}",
            tags=tags or [],
            active=active,
            created_at=BASE_TIME + timedelta(minutes=minutes or counter["n"])
        )
        db.add(reel)
        db.commit()
        db.refresh(reel)
        return reel

    return factory


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture
def auth_headers_for():
    return auth_headers
