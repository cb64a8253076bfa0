"""
Application configuration.

Everything is read from environment variables / the .env file. Services never
read these values directly: prospectflow.core.deps builds each provider client
from ``settings`` and passes it into the service functions.
"""
import logging
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    APP_ENV: str = "development"
    DATABASE_URL: str
    JWT_SECRET_KEY: str = ""

    # Google Places (Text Search, new API)
    GOOGLE_PLACES_API_KEY: str = ""

    # SerpApi web search (social intent)
    SERPAPI_KEY: str = ""

    # OpenAI-compatible chat completion gateway
    AI_API_KEY: str = ""
    AI_API_URL: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    AI_MODEL: str = "google/gemini-2.5-flash"

    # SendGrid Email
    SENDGRID_API_KEY: str = ""
    SENDER_EMAIL: str = "onboarding@prospectflow.com"
    SENDER_NAME: str = "ProspectFlow"
    REPLY_TO_EMAIL: str = ""
    BCC_EMAIL: str = ""

    # Site analysis
    SITE_FETCH_TIMEOUT: float = 15.0
    SITE_USER_AGENT: str = "Mozilla/5.0 (compatible; ProspectFlow/1.0; +https://prospectflow.com)"

    # Pipeline
    FOLLOW_UP_AFTER_DAYS: int = 3

    class Config:
        env_file = ".env"


settings = Settings()

# Validate critical security settings
if not settings.JWT_SECRET_KEY:
    raise ValueError(
        "JWT_SECRET_KEY is not set. It must exist as a JWT_SECRET_KEY environment variable. "
        "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
    )
