# backend/clubhouse/api/dependencies/auth.py
"""
Identity dependencies.

Authentication happens upstream: the identity provider (or the gateway in
front of this service) forwards the verified subject and role as request
headers. This module turns those headers into an ``Actor`` and offers
role guards for routes that are staff- or admin-only.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from ...core.enums import RoleName
from ...core.identity import Actor

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
ROLE_HEADER = "X-User-Role"


def get_current_actor(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    x_user_role: Optional[str] = Header(default=None, alias=ROLE_HEADER),
) -> Actor:
    """Build the acting party from identity headers; role defaults to member."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Missing identity", "code": "not_authenticated", "details": {}},
        )
    try:
        resolved = RoleName((x_user_role or RoleName.MEMBER.value).strip().lower())
    except ValueError:
        logger.warning("Rejected unknown role claim", extra={"role": x_user_role})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Unknown role", "code": "not_allowed", "details": {"role": x_user_role}},
        )
    return Actor(user_id=x_user_id.strip(), role=resolved)


def require_staff(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Route guard for trainers and administrators."""
    if not actor.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": "Only trainers and administrators can do this",
                "code": "not_allowed",
                "details": {},
            },
        )
    return actor


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Route guard for administrators."""
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Only administrators can do this", "code": "not_allowed", "details": {}},
        )
    return actor
