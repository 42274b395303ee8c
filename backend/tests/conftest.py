# backend/tests/conftest.py
"""
Pytest configuration for the club booking service.

Every test gets its own file-backed SQLite database (tmp_path), so tests
never share state and concurrency tests can open several connections.

SQLite runs every transaction as BEGIN IMMEDIATE: a session that has read
or written without committing holds the write lock. Commit (the factories
do) before handing control to another session, thread or the TestClient.
"""

import os

# Set before any clubhouse import reads settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CI", "true")

from datetime import date, time
from types import SimpleNamespace
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from clubhouse.api.dependencies.database import get_db
from clubhouse.api.dependencies.services import get_clock, get_event_publisher
from clubhouse.core.enums import ApprovalStatus
from clubhouse.database import init_db
from clubhouse.database.engines import build_engine
from clubhouse.events.publisher import EventPublisher
from clubhouse.main import app
from clubhouse.models import MemberProfile, MonthlyQuota, OneOffOccurrence, RecurringClass
from tests.support import EVENT_TYPES, MEMBER, NOW, TODAY, TOMORROW, FixedClock, build_services


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def engine(tmp_path) -> Iterator[Engine]:
    test_engine = build_engine(f"sqlite:///{tmp_path / 'clubhouse_test.db'}")
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


# ============================================================================
# Events
# ============================================================================


@pytest.fixture
def published() -> List[Tuple[str, Dict[str, Any]]]:
    return []


@pytest.fixture
def publisher(published: List[Tuple[str, Dict[str, Any]]]) -> EventPublisher:
    """Publisher that records every delivered event in ``published``."""
    event_publisher = EventPublisher()
    for event_type in EVENT_TYPES:
        event_publisher.subscribe(
            event_type, lambda name, payload: published.append((name, payload))
        )
    return event_publisher


# ============================================================================
# Services
# ============================================================================


@pytest.fixture
def services(db: Session, publisher: EventPublisher, clock: FixedClock) -> SimpleNamespace:
    return build_services(db, publisher, clock)


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_member(db: Session) -> Callable[..., MemberProfile]:
    def _make(
        user_id: str = MEMBER.user_id,
        approval_status: ApprovalStatus = ApprovalStatus.APPROVED,
        is_active: bool = True,
    ) -> MemberProfile:
        profile = MemberProfile(
            user_id=user_id,
            first_name="Lucia",
            last_name=user_id.title(),
            phone="+34600000000",
            email=f"{user_id}@example.com",
            approval_status=approval_status.value,
            is_active=is_active,
        )
        db.add(profile)
        db.commit()
        return profile

    return _make


@pytest.fixture
def make_class(db: Session) -> Callable[..., RecurringClass]:
    def _make(
        title: str = "Hatha Yoga",
        day_of_week: int = TODAY.weekday(),
        start: time = time(18, 0),
        end: time = time(19, 0),
        capacity: int = 10,
        instructor: Optional[str] = "Marta",
        is_active: bool = True,
    ) -> RecurringClass:
        template = RecurringClass(
            title=title,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            max_capacity=capacity,
            instructor=instructor,
            is_active=is_active,
        )
        db.add(template)
        db.commit()
        return template

    return _make


@pytest.fixture
def make_one_off(db: Session) -> Callable[..., OneOffOccurrence]:
    def _make(
        title: str = "Open Mat",
        occurrence_date: date = TOMORROW,
        start: time = time(10, 0),
        end: time = time(11, 30),
        capacity: int = 5,
        notes: Optional[str] = None,
        is_enabled: bool = True,
    ) -> OneOffOccurrence:
        row = OneOffOccurrence(
            title=title,
            occurrence_date=occurrence_date,
            start_time=start,
            end_time=end,
            max_capacity=capacity,
            notes=notes,
            is_enabled=is_enabled,
        )
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def set_quota(db: Session) -> Callable[..., MonthlyQuota]:
    """Seed the ledger row for the clock's month."""

    def _set(user_id: str, remaining: int, maximum: int = 12) -> MonthlyQuota:
        quota = MonthlyQuota(
            user_id=user_id,
            month=TODAY.month,
            year=TODAY.year,
            remaining_classes=remaining,
            max_monthly_classes=maximum,
        )
        db.add(quota)
        db.commit()
        return quota

    return _set


# ============================================================================
# HTTP
# ============================================================================


@pytest.fixture
def client(
    session_factory: sessionmaker, publisher: EventPublisher, clock: FixedClock
) -> Iterator[TestClient]:
    """TestClient bound to the per-test database, clock and publisher."""

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    # Don't use context manager - the lifespan would create tables on the default engine
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()
