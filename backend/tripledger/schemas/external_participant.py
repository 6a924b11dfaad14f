"""
Pydantic schemas for external participants.
"""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime


class ExternalParticipantCreate(BaseModel):
    """Schema for registering (or reusing) an external participant."""
    name: str = Field(min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class ExternalParticipantResponse(BaseModel):
    """Schema for external participant response."""
    id: int
    group_id: int
    name: str
    last_used_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True
