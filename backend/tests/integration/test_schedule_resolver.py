from datetime import time, timedelta

import pytest

from clubhouse.core.exceptions import NotFoundException, ValidationException
from clubhouse.domain.occurrence import OccurrenceKind, OccurrenceRef
from clubhouse.models import DateOverride, InstructorAssignment
from tests.support import MEMBER, TODAY, TOMORROW


class TestResolve:
    def test_orders_by_start_then_title(self, services, make_class, make_one_off):
        make_class(title="Zumba", start=time(18, 0), end=time(19, 0))
        make_class(title="Boxing", start=time(18, 0), end=time(19, 0))
        make_class(title="Spin", start=time(7, 0), end=time(8, 0))
        make_one_off(title="Workshop", occurrence_date=TODAY, start=time(12, 0), end=time(13, 0))

        titles = [o.title for o in services.resolver.resolve(TODAY)]

        assert titles == ["Spin", "Workshop", "Boxing", "Zumba"]

    def test_other_weekdays_and_inactive_templates_are_skipped(self, services, make_class):
        make_class(title="Tomorrow only", day_of_week=TOMORROW.weekday())
        make_class(title="Retired", is_active=False)

        assert services.resolver.resolve(TODAY) == []

    def test_override_reshapes_one_date(self, db, services, make_class):
        yoga = make_class(capacity=10)
        db.add(
            DateOverride(
                recurring_class_id=yoga.id,
                override_date=TODAY,
                start_time=time(19, 0),
                end_time=time(20, 0),
                max_capacity=4,
                notes="Moved for the tournament",
            )
        )
        db.commit()

        (today,) = services.resolver.resolve(TODAY)
        (next_week,) = services.resolver.resolve(TODAY + timedelta(days=7))

        assert (today.start_time, today.max_capacity, today.is_special) == (time(19, 0), 4, True)
        assert today.notes == "Moved for the tournament"
        assert (next_week.start_time, next_week.max_capacity, next_week.is_special) == (
            time(18, 0),
            10,
            False,
        )

    def test_cancelling_override_hides_occurrence(self, db, services, make_class):
        yoga = make_class()
        db.add(DateOverride(recurring_class_id=yoga.id, override_date=TODAY, is_cancelled=True))
        db.commit()

        assert services.resolver.resolve(TODAY) == []
        located = services.resolver.locate(OccurrenceRef.recurring(yoga.id), TODAY)
        assert located.is_cancelled

    def test_instructor_chain(self, db, services, make_class):
        yoga = make_class(instructor="Marta")
        db.add(InstructorAssignment(recurring_class_id=yoga.id, instructor_name="Pablo"))
        db.add(
            InstructorAssignment(
                recurring_class_id=yoga.id, assignment_date=TODAY, instructor_name="Irene"
            )
        )
        db.commit()

        assert services.resolver.resolve(TODAY)[0].instructor == "Irene"
        assert services.resolver.resolve(TODAY + timedelta(days=7))[0].instructor == "Pablo"

        db.add(DateOverride(recurring_class_id=yoga.id, override_date=TODAY, instructor="Sara"))
        db.commit()
        assert services.resolver.resolve(TODAY)[0].instructor == "Sara"

    def test_disabled_one_off_is_hidden(self, services, make_one_off):
        make_one_off(occurrence_date=TODAY, is_enabled=False)
        assert services.resolver.resolve(TODAY) == []

    def test_staff_edits_are_visible_immediately(self, db, services, make_class):
        yoga = make_class(capacity=10)
        assert services.resolver.resolve(TODAY)[0].max_capacity == 10

        yoga.max_capacity = 6
        db.commit()

        assert services.resolver.resolve(TODAY)[0].max_capacity == 6


class TestResolveRange:
    def test_range_covers_each_weekday_once(self, services, make_class, make_one_off):
        make_class(title="Wednesday", day_of_week=TODAY.weekday())
        make_one_off(title="Thursday special", occurrence_date=TOMORROW, notes="Guest coach")

        week = services.resolver.resolve_range(TODAY, TODAY + timedelta(days=6))

        assert [(o.date, o.title) for o in week] == [
            (TODAY, "Wednesday"),
            (TOMORROW, "Thursday special"),
        ]
        assert week[1].kind == OccurrenceKind.ONE_OFF and week[1].is_special

    def test_range_with_bookings(self, services, make_member, make_class):
        make_member()
        yoga = make_class(capacity=3)
        services.reservations.create_reservation(MEMBER, TODAY, OccurrenceRef.recurring(yoga.id))

        (row,) = services.resolver.resolve_range_with_bookings(TODAY, TODAY)

        assert row.current_bookings == 1
        assert row.spots_left == 2

    def test_reversed_range(self, services):
        with pytest.raises(ValidationException):
            services.resolver.resolve_range(TOMORROW, TODAY)

    def test_range_too_long(self, services):
        with pytest.raises(ValidationException):
            services.resolver.resolve_range(TODAY, TODAY + timedelta(days=90))


class TestLocate:
    def test_one_off_on_wrong_date(self, services, make_one_off):
        open_mat = make_one_off(occurrence_date=TOMORROW)
        with pytest.raises(NotFoundException):
            services.resolver.locate(OccurrenceRef.one_off(open_mat.id), TODAY)

    def test_loose_date_projects_template(self, services, make_class):
        yoga = make_class()
        located = services.resolver.locate(
            OccurrenceRef.recurring(yoga.id), TOMORROW, strict_date=False
        )
        assert located.date == TOMORROW
        assert located.start_time == time(18, 0)
