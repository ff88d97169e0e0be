"""People domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_timezone


class UserProfileResponse(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None
    timezone: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserProfileUpdate(BaseModel):
    """Schema for self-service profile updates"""

    display_name: Optional[str] = Field(None, max_length=100)
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        return validate_timezone(v)


class CollaboratorResponse(BaseModel):
    email: str
    display_name: Optional[str] = None
    timezone: str
    collaboration_count: int
