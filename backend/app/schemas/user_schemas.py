"""
User Schemas - request/response DTOs for the account endpoints.
"""

from pydantic import BaseModel, Field

from app.models.user_profile import UserProfileResponse


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserEnvelope(BaseModel):
    """Both register and login answer with ``{"user": {...}}``."""
    user: UserProfileResponse
