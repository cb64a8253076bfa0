"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel, EmailStr
from uuid import UUID


class UserRegister(BaseModel):
    """Request schema for user registration."""
    email: EmailStr
    password: str
    full_name: str | None = None


class UserLogin(BaseModel):
    """Request schema for user login."""
    email: EmailStr
    password: str


class Token(BaseModel):
    """Response schema for login. Carries the JWT token."""
    access_token: str
    token_type: str = "bearer"
    user_id: UUID | None = None
    full_name: str | None = None
    email: str | None = None


class UserOut(BaseModel):
    """Response schema for user info."""
    id: UUID
    email: str
    full_name: str | None = None
    is_active: bool

    class Config:
        from_attributes = True
