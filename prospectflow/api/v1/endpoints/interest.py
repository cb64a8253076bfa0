"""Inbound reply endpoint."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.database import get_db
from prospectflow.core.deps import get_tenant_id
from prospectflow.core.exceptions import LeadValidationError
from prospectflow.schemas.pipeline import InterestRequest
from prospectflow.services.interest_detector import process_inbound_message

router = APIRouter()


@router.post("/")
async def detect(
    request: InterestRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    if not request.message.strip():
        raise LeadValidationError("lead_id and message are required")

    analysis = await process_inbound_message(db, tenant_id, request.lead_id, request.message, request.channel)
    return {"success": True, **analysis.model_dump(mode="json")}
