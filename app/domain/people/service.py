"""People service - Profile and collaborator suggestions"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import User
from ..scheduling.permissions import require_actor
from .repository import PeopleRepository
from .schemas import UserProfileUpdate

logger = logging.getLogger(__name__)


class PeopleService:
    """Service layer for person operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PeopleRepository()

    def get_profile(self, actor: Optional[User]) -> User:
        return require_actor(actor)

    def update_profile(self, actor: Optional[User], data: UserProfileUpdate) -> User:
        actor = require_actor(actor)
        updates = {}
        if data.display_name is not None:
            updates["display_name"] = data.display_name.strip() or None
        if data.timezone is not None:
            updates["timezone"] = data.timezone

        user = self.repo.update_profile(self.db, actor, **updates)
        logger.info(f"✅ Profile updated for {user.email}")
        return user

    def suggest_collaborators(self, actor: Optional[User], limit: int = 10) -> list[dict]:
        """People the actor invites most often"""
        actor = require_actor(actor)
        rows = self.repo.get_frequent_collaborators(self.db, actor.id, limit)
        logger.debug(f"Found {len(rows)} suggested collaborators for user {actor.id}")
        return [
            {
                "email": user.email,
                "display_name": user.display_name,
                "timezone": user.timezone,
                "collaboration_count": count,
            }
            for user, count in rows
        ]
