"""Authentication endpoints for ProspectFlow."""

import logging
from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.config import settings
from prospectflow.core.database import get_db
from prospectflow.core.deps import get_current_user
from prospectflow.models.user import User
from prospectflow.schemas.auth import UserRegister, UserLogin, Token, UserOut
from prospectflow.services.auth import (
    authenticate_user,
    create_access_token,
    get_user_by_email,
    register_user,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserOut, status_code=201)
async def register(user_data: UserRegister, db: AsyncSession = Depends(get_db)):
    """Create an account. The new user's id is the tenant id of everything they import."""
    existing_user = await get_user_by_email(db, user_data.email)
    if existing_user:
        raise HTTPException(status_code=409, detail="Email already registered")

    return await register_user(db, user_data.email, user_data.password, user_data.full_name)


@router.post("/login", response_model=Token)
async def login(credentials: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await authenticate_user(db, credentials.email, credentials.password)

    if not user:
        raise HTTPException(status_code=401, detail="Incorrect email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="User account is disabled")

    user.last_login_at = datetime.utcnow()
    await db.commit()

    access_token = create_access_token(data={"sub": str(user.id)}, secret_key=settings.JWT_SECRET_KEY)

    logger.info("User logged in: %s", user.email)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user_id": user.id,
        "full_name": user.full_name,
        "email": user.email,
    }


@router.get("/me", response_model=UserOut)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
