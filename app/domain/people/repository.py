"""People repository - Database operations for profiles and collaborators"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Invitation, Meeting, User


class PeopleRepository:
    """Repository for person database operations"""

    @staticmethod
    def update_profile(db: Session, user: User, **updates) -> User:
        for key, value in updates.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def get_frequent_collaborators(db: Session, user_id: int, limit: int = 10) -> list[tuple[User, int]]:
        """Registered people the user has invited, most invitations first"""
        invite_count = func.count(Invitation.id).label("collaboration_count")
        return (
            db.query(User, invite_count)
            .join(Invitation, Invitation.recipient_email == User.email)
            .join(Meeting, Invitation.meeting_id == Meeting.id)
            .filter(
                Meeting.organizer_id == user_id,
                Meeting.deleted_at.is_(None),
                User.id != user_id,
            )
            .group_by(User.id)
            .order_by(invite_count.desc(), User.email)
            .limit(limit)
            .all()
        )
