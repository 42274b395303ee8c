"""Identity claims handed to the core by the external identity provider."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import RoleName
from .exceptions import AuthorizationException


@dataclass(frozen=True)
class Actor:
    """The authenticated party performing an operation."""

    user_id: str
    role: RoleName = RoleName.MEMBER

    @property
    def id(self) -> str:
        return self.user_id

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in (RoleName.TRAINER, RoleName.ADMIN)

    def require_staff(self) -> None:
        if not self.is_staff:
            raise AuthorizationException("Only trainers and administrators can do this")

    def require_admin(self) -> None:
        if not self.is_admin:
            raise AuthorizationException("Only administrators can do this")
