from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator


class UserRegister(BaseModel):
    """
    Payload for self sign-up. A default workspace is created for the new user.
    """
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    confirm_password: str = Field(..., min_length=8, max_length=72)
    full_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("full_name", mode="before")
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class UserLogin(BaseModel):
    """
    Payload for user login.
    """
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class ProfileOut(BaseModel):
    """
    Public profile returned to clients (no credential fields).
    """
    id: str
    user_id: str = Field(alias="userId")
    email: EmailStr
    full_name: Optional[str] = Field(default=None, alias="fullName")
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = {"populate_by_name": True}


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=255)
    avatar_url: Optional[str] = Field(default=None, max_length=1024)


class RegisterResponse(BaseModel):
    profile: ProfileOut
    workspace_id: str = Field(alias="workspaceId")

    model_config = {"populate_by_name": True}


class TokenResponse(BaseModel):
    """
    Response model for token pair and profile data.
    """
    token: str
    refreshToken: str
    profile: ProfileOut


class RefreshRequest(BaseModel):
    """
    Payload for refreshing access tokens via refresh token.
    """
    refreshToken: str


class TokenPair(BaseModel):
    """
    Response model for just access and refresh tokens.
    Used by /api/auth/refresh endpoint.
    """
    token: str
    refreshToken: str
