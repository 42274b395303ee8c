# backend/clubhouse/repositories/member_repository.py
"""Member profile persistence."""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ApprovalStatus
from ..core.exceptions import RepositoryException
from ..models.member import MemberProfile
from .base_repository import BaseRepository


class MemberRepository(BaseRepository[MemberProfile]):
    def __init__(self, db: Session):
        super().__init__(db, MemberProfile)

    def get_by_user_id(self, user_id: str, for_update: bool = False) -> Optional[MemberProfile]:
        try:
            query = self.db.query(MemberProfile).filter(MemberProfile.user_id == user_id)
            if for_update:
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading member {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to load member profile: {str(e)}") from e

    def list_members(self, status: Optional[ApprovalStatus] = None) -> List[MemberProfile]:
        try:
            query = self.db.query(MemberProfile)
            if status is not None:
                query = query.filter(MemberProfile.approval_status == status.value)
            return query.order_by(MemberProfile.created_at).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing members: {str(e)}")
            raise RepositoryException(f"Failed to list members: {str(e)}") from e

    def list_bookable_user_ids(self) -> List[str]:
        """Users whose membership is approved and active."""
        try:
            rows = (
                self.db.query(MemberProfile.user_id)
                .filter(
                    MemberProfile.approval_status == ApprovalStatus.APPROVED.value,
                    MemberProfile.is_active.is_(True),
                )
                .all()
            )
            return [row[0] for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookable members: {str(e)}")
            raise RepositoryException(f"Failed to list members: {str(e)}") from e
