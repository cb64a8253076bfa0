"""Import endpoints: JSON rows, raw CSV text, maps search and social intent search."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.database import get_db
from prospectflow.core.deps import get_tenant_id, get_search_client, get_event_queue, get_web_search_client
from prospectflow.schemas.pipeline import ImportRequest, CSVImportRequest, SearchRequest, IntentSearchRequest
from prospectflow.services.events import EventQueue
from prospectflow.services.importer import import_leads, parse_csv, search_and_import, search_intent
from prospectflow.services.search_provider import PlacesSearchClient
from prospectflow.services.web_search import WebSearchClient

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/")
async def import_rows(
    request: ImportRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    rows = [lead.model_dump() for lead in request.leads]
    result = await import_leads(db, tenant_id, rows, request.source)
    return {"success": True, **result.model_dump(mode="json")}


@router.post("/csv")
async def import_csv(
    request: CSVImportRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    rows = parse_csv(request.csv_text)
    logger.info("Parsed %d rows from CSV for tenant %s", len(rows), tenant_id)
    result = await import_leads(db, tenant_id, rows, request.source)
    return {"success": True, **result.model_dump(mode="json")}


@router.post("/search")
async def import_from_search(
    request: SearchRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    search_client: PlacesSearchClient = Depends(get_search_client),
    events: EventQueue = Depends(get_event_queue),
):
    result = await search_and_import(
        db, tenant_id, request.query, search_client, events,
        limit=request.limit, site_filter=request.site_filter,
    )
    return {"success": True, **result.model_dump(mode="json")}


@router.post("/intent")
async def import_from_intent_search(
    request: IntentSearchRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    client: WebSearchClient = Depends(get_web_search_client),
):
    result = await search_intent(db, tenant_id, request.query, client)
    return {"success": True, **result.model_dump(mode="json")}
