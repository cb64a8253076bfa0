"""Site analysis endpoint: one lead or a batch of not-yet-analysed leads."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.database import get_db
from prospectflow.core.deps import get_tenant_id, get_site_fetcher, get_event_queue
from prospectflow.core.exceptions import LeadValidationError
from prospectflow.schemas.pipeline import AnalysisRequest
from prospectflow.services.events import EventQueue
from prospectflow.services.site_classifier import SiteFetcher, classify_lead, classify_batch

router = APIRouter()


@router.post("/")
async def analyze(
    request: AnalysisRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    fetcher: SiteFetcher = Depends(get_site_fetcher),
    events: EventQueue = Depends(get_event_queue),
):
    if request.batch:
        report = await classify_batch(db, tenant_id, request.limit, fetcher)
        return {"success": True, **report}

    if request.lead_id is None:
        raise LeadValidationError("Either lead_id or batch mode is required")

    analysis = await classify_lead(db, tenant_id, request.lead_id, fetcher, events, website=request.website)
    return {"success": True, **analysis.model_dump(mode="json")}
