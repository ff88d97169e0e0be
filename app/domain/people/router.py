"""People router - FastAPI endpoints for profiles and collaborator suggestions"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import CollaboratorResponse, UserProfileResponse, UserProfileUpdate
from .service import PeopleService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["People"])


def get_people_service(db: Session = Depends(get_db)) -> PeopleService:
    """Dependency injection for PeopleService"""
    return PeopleService(db)


@router.get("/users/me", response_model=UserProfileResponse)
async def get_profile(
    current_user: User = Depends(get_current_user),
    service: PeopleService = Depends(get_people_service),
):
    return service.get_profile(current_user)


@router.patch("/users/me", response_model=UserProfileResponse)
async def update_profile(
    data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: PeopleService = Depends(get_people_service),
):
    """Update display name and/or timezone"""
    return service.update_profile(current_user, data)


@router.get("/availability/collaborators", response_model=list[CollaboratorResponse])
async def suggest_collaborators(
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: PeopleService = Depends(get_people_service),
):
    """People the current user invites most often"""
    return service.suggest_collaborators(current_user, limit)


__all__ = ["router"]
