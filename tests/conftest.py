"""Common test fixtures for all test modules"""
import itertools
import random
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.db import init_db, register_sqlite_functions
from core.models import Category, Series
from ranking.engine import RankingEngine
from store.sql_store import SqlVideoStore

FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Reference time shared by the engine clock and seeded rows"""
    return FIXED_NOW


@pytest.fixture
def db_engine():
    """In-memory SQLite database with every table created"""
    engine = register_sqlite_functions(create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ))
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(db_engine):
    Session = sessionmaker(bind=db_engine, autoflush=False)
    with Session() as session:
        yield session


@pytest.fixture
def store(session):
    return SqlVideoStore(session)


@pytest.fixture
def ranking_engine(store, now):
    return RankingEngine(store, clock=lambda: now, rng=random.Random(1234))


@pytest.fixture
def catalog(session):
    """One category with one series in it"""
    category = Category(name="Comedy", slug="comedy")
    session.add(category)
    session.flush()
    series = Series(title="Office Pranks", slug="office-pranks", category_id=category.id)
    session.add(series)
    session.commit()
    return {"category_id": category.id, "series_id": series.id}


@pytest.fixture
def make_video(store, now):
    """Factory inserting published videos created a day before `now` unless overridden"""
    sequence = itertools.count(1)

    def _make(**overrides):
        n = next(sequence)
        values = {
            "title": f"Clip number {n}",
            "description": None,
            "tags": None,
            "duration": 30,
            "views": 0,
            "likes": 0,
            "status": "published",
            "created_at": now - timedelta(days=1),
            "updated_at": now - timedelta(days=1),
        }
        values.update(overrides)
        return store.add(values)

    return _make


@pytest.fixture
def report_frame():
    """Published-video frame as loaded by the engagement report"""
    return pd.DataFrame([
        {"id": 1, "title": "Fresh hit", "views": 100, "likes": 5, "duration": 30,
         "category_id": 1, "created_at": FIXED_NOW - timedelta(hours=2)},
        {"id": 2, "title": "Liked today", "views": 10, "likes": 50, "duration": 45,
         "category_id": 1, "created_at": FIXED_NOW - timedelta(hours=3)},
        {"id": 3, "title": "Old classic", "views": 200, "likes": 0, "duration": 60,
         "category_id": 2, "created_at": FIXED_NOW - timedelta(days=30)},
        {"id": 4, "title": "Uncategorised", "views": 50, "likes": 1, "duration": 16,
         "category_id": None, "created_at": FIXED_NOW - timedelta(days=3)},
    ]).assign(created_at=lambda df: pd.to_datetime(df["created_at"], utc=True))
