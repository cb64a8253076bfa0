"""Batch pipeline passes (prospecting and follow-ups) for the current tenant."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.config import settings
from prospectflow.core.database import get_db
from prospectflow.core.deps import get_tenant_id, get_site_fetcher, get_email_sender, get_ai_client
from prospectflow.schemas.pipeline import ProspectRequest, FollowUpRequest
from prospectflow.services.ai_client import AICompletionClient
from prospectflow.services.email_sender import EmailSender
from prospectflow.services.pipeline import run_prospecting, run_follow_ups
from prospectflow.services.site_classifier import SiteFetcher

router = APIRouter()


def _envelope(report: dict) -> dict:
    return {
        "success": True,
        "processed": report["processed"],
        "results": [r.model_dump(mode="json") for r in report["results"]],
    }


@router.post("/prospect")
async def prospect(
    request: ProspectRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    fetcher: SiteFetcher = Depends(get_site_fetcher),
    email_sender: EmailSender = Depends(get_email_sender),
    ai_client: AICompletionClient = Depends(get_ai_client),
):
    report = await run_prospecting(db, tenant_id, request.limit, fetcher, email_sender, ai_client)
    return _envelope(report)


@router.post("/follow-ups")
async def follow_ups(
    request: FollowUpRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
    ai_client: AICompletionClient = Depends(get_ai_client),
):
    min_days = request.min_days if request.min_days is not None else settings.FOLLOW_UP_AFTER_DAYS
    report = await run_follow_ups(db, tenant_id, request.limit, min_days, email_sender, ai_client)
    return _envelope(report)
