import pytest

from clubhouse.core.enums import BookingErrorCode, RoleName
from clubhouse.core.exceptions import (
    AuthorizationException,
    ClassFullException,
    NotFoundException,
    TransientInfrastructureException,
)
from clubhouse.core.identity import Actor


class TestActor:
    def test_roles(self) -> None:
        assert not Actor("m").is_staff
        assert Actor("t", RoleName.TRAINER).is_staff
        assert not Actor("t", RoleName.TRAINER).is_admin
        assert Actor("a", RoleName.ADMIN).is_admin

    def test_guards_raise_authorization(self) -> None:
        with pytest.raises(AuthorizationException):
            Actor("m").require_staff()
        with pytest.raises(AuthorizationException):
            Actor("t", RoleName.TRAINER).require_admin()
        Actor("a", RoleName.ADMIN).require_staff()


class TestHttpMapping:
    def test_policy_violation_is_422_with_code(self) -> None:
        http_exc = ClassFullException({"max_capacity": 2}).to_http_exception()
        assert http_exc.status_code == 422
        assert http_exc.detail["code"] == BookingErrorCode.CLASS_FULL.value
        assert http_exc.detail["details"] == {"max_capacity": 2}

    def test_not_found_and_authorization(self) -> None:
        assert NotFoundException("missing").to_http_exception().status_code == 404
        assert AuthorizationException().to_http_exception().status_code == 403

    def test_transient_advertises_retry(self) -> None:
        http_exc = TransientInfrastructureException().to_http_exception()
        assert http_exc.status_code == 503
        assert http_exc.headers == {"Retry-After": "2"}
