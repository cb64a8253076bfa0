"""Lead endpoints: board listing, manual entry, edits, kanban moves and bulk delete.

- GET    /api/v1/leads/           → List leads (query filters)
- GET    /api/v1/leads/stats      → Dashboard counts
- GET    /api/v1/leads/{id}       → One lead
- POST   /api/v1/leads/           → Manual lead (goes through the import path)
- PATCH  /api/v1/leads/{id}       → Edit fields from the details sheet
- PUT    /api/v1/leads/{id}/move  → Kanban drag to a status/index
- POST   /api/v1/leads/delete     → Explicit bulk delete
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.database import get_db
from prospectflow.core.deps import get_tenant_id
from prospectflow.models.lead import LeadSource, LeadStatus, SiteClassification
from prospectflow.schemas.lead import (
    PartialLead,
    LeadOut,
    LeadUpdate,
    LeadMove,
    LeadDeleteRequest,
    LeadStatsOut,
)
from prospectflow.services import lead_store
from prospectflow.services.importer import import_leads

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[LeadOut])
async def list_leads(
    status: Optional[LeadStatus] = None,
    source: Optional[LeadSource] = None,
    classification: Optional[SiteClassification] = None,
    search: Optional[str] = Query(None, max_length=200),
    limit: int = Query(100, ge=1, le=500),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    return await lead_store.find_leads(
        db, tenant_id,
        status=status, source=source, classification=classification,
        search=search, limit=limit,
    )


@router.get("/stats", response_model=LeadStatsOut)
async def get_lead_stats(
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    return await lead_store.lead_stats(db, tenant_id)


@router.get("/{lead_id}", response_model=LeadOut)
async def get_lead(
    lead_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    return await lead_store.require_lead(db, tenant_id, lead_id)


@router.post("/", status_code=201)
async def create_lead(
    lead: PartialLead,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    """Manual entry: same normalization and email dedup as a CSV import."""
    result = await import_leads(db, tenant_id, [lead.model_dump()], LeadSource.MANUAL)
    return {"success": True, **result.model_dump(mode="json")}


@router.patch("/{lead_id}", response_model=LeadOut)
async def update_lead(
    lead_id: UUID,
    changes: LeadUpdate,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    return await lead_store.update_lead(db, tenant_id, lead_id, changes.model_dump(exclude_unset=True))


@router.put("/{lead_id}/move", response_model=LeadOut)
async def move_lead(
    lead_id: UUID,
    move: LeadMove,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    return await lead_store.move_lead(db, tenant_id, lead_id, move.status, move.index)


@router.post("/delete")
async def delete_leads(
    request: LeadDeleteRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    deleted = await lead_store.delete_leads(db, tenant_id, request.ids)
    return {"success": True, "deleted": deleted}
