"""Parallel reservations: one session per thread against a shared SQLite file."""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from clubhouse.core.enums import BookingErrorCode, BookingStatus
from clubhouse.core.exceptions import PolicyViolationException
from clubhouse.core.identity import Actor
from clubhouse.domain.occurrence import OccurrenceRef
from clubhouse.models import Booking, MonthlyQuota
from tests.support import TODAY, build_services

WORKERS = 8


def _attempt(session_factory, clock, actor: Actor, ref: OccurrenceRef) -> Optional[str]:
    session = session_factory()
    try:
        build_services(session, None, clock).reservations.create_reservation(actor, TODAY, ref)
        return None
    except PolicyViolationException as exc:
        return exc.code
    finally:
        session.close()


def _run_parallel(session_factory, clock, actors: List[Actor], ref: OccurrenceRef) -> List[Optional[str]]:
    with ThreadPoolExecutor(max_workers=len(actors)) as pool:
        futures = [pool.submit(_attempt, session_factory, clock, actor, ref) for actor in actors]
        return [future.result() for future in futures]


def test_last_seat_goes_to_exactly_one_member(session_factory, clock, make_member, make_class, db):
    actors = [Actor(f"member-{i}") for i in range(WORKERS)]
    for actor in actors:
        make_member(actor.user_id)
    ref = OccurrenceRef.recurring(make_class(capacity=1).id)
    db.commit()

    outcomes = _run_parallel(session_factory, clock, actors, ref)

    assert outcomes.count(None) == 1
    assert outcomes.count(BookingErrorCode.CLASS_FULL.value) == WORKERS - 1

    verify = session_factory()
    try:
        assert verify.query(Booking).filter_by(status=BookingStatus.CONFIRMED.value).count() == 1
        debited = verify.query(MonthlyQuota).filter(MonthlyQuota.remaining_classes == 11).count()
        assert debited == 1
    finally:
        verify.close()


def test_same_member_racing_books_once(session_factory, clock, make_member, make_class, db):
    make_member("member-1")
    ref = OccurrenceRef.recurring(make_class(capacity=10).id)
    db.commit()

    outcomes = _run_parallel(session_factory, clock, [Actor("member-1")] * 4, ref)

    assert outcomes.count(None) == 1
    assert set(outcomes) - {None} == {BookingErrorCode.ALREADY_BOOKED.value}

    verify = session_factory()
    try:
        quota = verify.query(MonthlyQuota).filter_by(user_id="member-1").one()
        assert quota.remaining_classes == 11
    finally:
        verify.close()


def test_last_monthly_class_spent_once(session_factory, clock, make_member, make_class, set_quota, db):
    make_member("member-1")
    set_quota("member-1", remaining=1)
    classes = [
        make_class(title=f"Class {i}", capacity=5).id
        for i in range(3)
    ]
    db.commit()

    with ThreadPoolExecutor(max_workers=3) as pool:
        futures = [
            pool.submit(_attempt, session_factory, clock, Actor("member-1"), OccurrenceRef.recurring(cid))
            for cid in classes
        ]
        outcomes = [f.result() for f in futures]

    assert outcomes.count(None) == 1
    assert outcomes.count(BookingErrorCode.NO_CLASSES_REMAINING.value) == 2

    verify = session_factory()
    try:
        assert verify.query(MonthlyQuota).filter_by(user_id="member-1").one().remaining_classes == 0
    finally:
        verify.close()
