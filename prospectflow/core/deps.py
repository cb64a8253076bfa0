"""FastAPI dependencies: the authenticated tenant and the provider clients.

Provider clients are built here from ``settings`` and handed to the services,
so no service reads configuration on its own. Tests override these.
"""

from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.config import settings
from prospectflow.core.database import get_db
from prospectflow.models.user import User
from prospectflow.services.auth import decode_access_token
from prospectflow.services.ai_client import AICompletionClient
from prospectflow.services.email_sender import EmailSender
from prospectflow.services.events import EventQueue, InMemoryEventQueue
from prospectflow.services.search_provider import PlacesSearchClient
from prospectflow.services.site_classifier import SiteFetcher
from prospectflow.services.web_search import WebSearchClient

# auto_error=False so a missing header is a 401 like a bad token, not a 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract and validate the current user from the bearer token.

    Every failure is a 401 whose ``detail`` says what went wrong, so a client
    can tell "log in again" apart from "no data".
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials, settings.JWT_SECRET_KEY)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id: Optional[str] = payload.get("sub")
    try:
        user_uuid = UUID(user_id) if user_id else None
    except ValueError:
        user_uuid = None
    if user_uuid is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


async def get_tenant_id(user: User = Depends(get_current_user)) -> UUID:
    """The tenant that owns every lead this request may touch."""
    return user.id


def get_site_fetcher() -> SiteFetcher:
    return SiteFetcher(timeout=settings.SITE_FETCH_TIMEOUT, user_agent=settings.SITE_USER_AGENT)


def get_ai_client() -> AICompletionClient:
    return AICompletionClient(
        api_key=settings.AI_API_KEY,
        api_url=settings.AI_API_URL,
        model=settings.AI_MODEL,
    )


def get_email_sender() -> EmailSender:
    return EmailSender(
        api_key=settings.SENDGRID_API_KEY,
        from_email=settings.SENDER_EMAIL,
        from_name=settings.SENDER_NAME,
        reply_to=settings.REPLY_TO_EMAIL,
        bcc=settings.BCC_EMAIL,
    )


def get_search_client() -> PlacesSearchClient:
    return PlacesSearchClient(api_key=settings.GOOGLE_PLACES_API_KEY)


def get_web_search_client() -> WebSearchClient:
    return WebSearchClient(api_key=settings.SERPAPI_KEY)


def get_event_queue(request: Request) -> EventQueue:
    """The app's dispatcher; a recording queue when the app runs without lifespan."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    return dispatcher if dispatcher is not None else InMemoryEventQueue()
