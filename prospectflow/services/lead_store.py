"""Lead store.

Every read and write is scoped by ``tenant_id``; a query never sees another
tenant's rows. Writes go through ``apply_changes`` so the lead invariants are
checked in one place, and each public mutation commits once (all-or-nothing).
"""

import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select, func, delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.exceptions import LeadNotFoundError, LeadValidationError, PersistenceError
from prospectflow.models.lead import Lead, LeadSource, LeadStatus, SiteClassification
from prospectflow.models.contact_log import ContactLog, ContactDirection
from prospectflow.services.normalize import normalize_email, normalize_website

logger = logging.getLogger(__name__)

POSITION_STEP = 1.0

_UPDATABLE_FIELDS = {
    "company_name", "segment", "city", "state", "email", "phone", "whatsapp", "website",
    "site_classification", "site_active", "site_performance_score", "site_indexed", "site_analysis_date",
    "status", "score", "automation_paused", "opted_out", "opted_out_date",
    "contact_attempts", "last_contact_date", "position", "tags", "notes",
}


def compute_position(before: Optional[float], after: Optional[float]) -> float:
    """Fractional position between two neighbours (either may be missing)."""
    if before is None and after is None:
        return POSITION_STEP
    if before is None:
        return after - POSITION_STEP
    if after is None:
        return before + POSITION_STEP
    return (before + after) / 2


async def _end_position(db: AsyncSession, tenant_id: UUID, status: LeadStatus) -> float:
    result = await db.execute(
        select(func.max(Lead.position)).where(Lead.tenant_id == tenant_id, Lead.status == status)
    )
    return compute_position(result.scalar(), None)


async def commit(db: AsyncSession, action: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Lead store %s failed: %s", action, e)
        raise PersistenceError(f"Failed to {action}: {e}") from e


async def find_leads(
    db: AsyncSession,
    tenant_id: UUID,
    *,
    status: LeadStatus | None = None,
    source: LeadSource | None = None,
    classification: SiteClassification | None = None,
    needs_analysis: bool = False,
    has_email: bool | None = None,
    search: str | None = None,
    limit: int | None = 100,
) -> list[Lead]:
    """List a tenant's leads, board order (position) first."""
    query = select(Lead).where(Lead.tenant_id == tenant_id)

    if status:
        query = query.where(Lead.status == status)
    if source:
        query = query.where(Lead.source == source)
    if classification:
        query = query.where(Lead.site_classification == classification)
    if needs_analysis:
        # site_analysis_date IS NULL is the single source of truth for "not analysed yet"
        query = query.where(Lead.website.is_not(None), Lead.site_analysis_date.is_(None))
    if has_email is True:
        query = query.where(Lead.email.is_not(None), Lead.email != "")
    elif has_email is False:
        query = query.where(or_(Lead.email.is_(None), Lead.email == ""))
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(or_(
            func.lower(Lead.company_name).like(pattern),
            func.lower(Lead.email).like(pattern),
            func.lower(Lead.city).like(pattern),
        ))

    query = query.order_by(Lead.position, Lead.created_at)
    if limit:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_lead(db: AsyncSession, tenant_id: UUID, lead_id: UUID) -> Lead | None:
    result = await db.execute(
        select(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none()


async def require_lead(db: AsyncSession, tenant_id: UUID, lead_id: UUID) -> Lead:
    lead = await get_lead(db, tenant_id, lead_id)
    if lead is None:
        raise LeadNotFoundError(f"Lead not found: {lead_id}")
    return lead


async def insert_leads(
    db: AsyncSession,
    tenant_id: UUID,
    rows: Iterable[dict],
    source: LeadSource = LeadSource.MANUAL,
) -> list[Lead]:
    """Insert validated rows as new leads at the end of the "new" column."""
    position = await _end_position(db, tenant_id, LeadStatus.NEW)
    leads = []
    for row in rows:
        if not (row.get("company_name") or "").strip():
            raise LeadValidationError("company_name is required")
        lead = Lead(
            **row,
            tenant_id=tenant_id,
            source=source,
            status=LeadStatus.NEW,
            position=position,
        )
        position += POSITION_STEP
        db.add(lead)
        leads.append(lead)

    if leads:
        await commit(db, "insert leads")
        logger.info("Inserted %d leads for tenant %s (source=%s)", len(leads), tenant_id, source.value)
    return leads


async def apply_changes(db: AsyncSession, lead: Lead, fields: dict) -> Lead:
    """Validate ``fields`` against the lead invariants and set them, without committing.

    Callers that must persist other rows in the same transaction (contact logs,
    tasks) call this and commit once themselves.
    """
    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise LeadValidationError(f"Unknown lead fields: {', '.join(sorted(unknown))}")

    fields = dict(fields)

    if "company_name" in fields:
        name = (fields["company_name"] or "").strip()
        if not name:
            raise LeadValidationError("company_name cannot be empty")
        fields["company_name"] = name

    if "email" in fields:
        raw = fields["email"]
        email = normalize_email(raw)
        if raw and raw.strip() and email is None:
            raise LeadValidationError(f"Invalid email: {raw}")
        fields["email"] = email

    if "website" in fields:
        fields["website"] = normalize_website(fields["website"])
        if fields["website"] != lead.website and "site_analysis_date" not in fields:
            # Queued again for batch analysis
            fields["site_analysis_date"] = None

    if "site_classification" in fields and fields["site_classification"] is None and lead.site_classification is not None:
        raise LeadValidationError("site_classification cannot be reset once analysed; request a re-analysis instead")

    if fields.get("opted_out"):
        fields["automation_paused"] = True
        fields.setdefault("opted_out_date", datetime.utcnow())
    elif lead.opted_out and fields.get("automation_paused") is False and fields.get("opted_out") is not False:
        raise LeadValidationError("Automation cannot be resumed for an opted-out lead")

    new_status = fields.get("status")
    if new_status is not None and new_status != lead.status and "position" not in fields:
        fields["position"] = await _end_position(db, lead.tenant_id, new_status)

    for field, value in fields.items():
        setattr(lead, field, value)
    lead.updated_at = datetime.utcnow()
    return lead


async def update_lead(db: AsyncSession, tenant_id: UUID, lead_id: UUID, fields: dict) -> Lead:
    """Single-row atomic update: every field lands or none does."""
    lead = await require_lead(db, tenant_id, lead_id)
    await apply_changes(db, lead, fields)
    await commit(db, "update lead")
    await db.refresh(lead)
    logger.info("Updated lead %s: %s", lead_id, ", ".join(sorted(fields)))
    return lead


async def move_lead(
    db: AsyncSession,
    tenant_id: UUID,
    lead_id: UUID,
    status: LeadStatus,
    index: int | None = None,
) -> Lead:
    """Drop a lead into ``status`` at ``index``; the position is recomputed from its new neighbours."""
    lead = await require_lead(db, tenant_id, lead_id)

    result = await db.execute(
        select(Lead.position)
        .where(Lead.tenant_id == tenant_id, Lead.status == status, Lead.id != lead_id)
        .order_by(Lead.position, Lead.created_at)
    )
    siblings = [row[0] for row in result.all()]

    if index is None or index >= len(siblings):
        position = compute_position(siblings[-1] if siblings else None, None)
    elif index == 0:
        position = compute_position(None, siblings[0])
    else:
        position = compute_position(siblings[index - 1], siblings[index])

    await apply_changes(db, lead, {"status": status, "position": position})
    await commit(db, "move lead")
    await db.refresh(lead)
    logger.info("Moved lead %s to %s at position %s", lead_id, status.value, position)
    return lead


async def delete_leads(db: AsyncSession, tenant_id: UUID, ids: list[UUID]) -> int:
    """Explicit bulk delete; the only way a lead is ever removed."""
    if not ids:
        raise LeadValidationError("No lead ids given")
    result = await db.execute(
        delete(Lead).where(Lead.tenant_id == tenant_id, Lead.id.in_(ids))
    )
    await commit(db, "delete leads")
    logger.info("Deleted %d leads for tenant %s", result.rowcount, tenant_id)
    return result.rowcount


async def lead_stats(db: AsyncSession, tenant_id: UUID) -> dict:
    """Counts for the dashboard widgets."""
    by_status = {}
    result = await db.execute(
        select(Lead.status, func.count(Lead.id)).where(Lead.tenant_id == tenant_id).group_by(Lead.status)
    )
    for status, count in result.all():
        by_status[status.value] = count

    by_classification = {}
    result = await db.execute(
        select(Lead.site_classification, func.count(Lead.id))
        .where(Lead.tenant_id == tenant_id, Lead.site_classification.is_not(None))
        .group_by(Lead.site_classification)
    )
    for classification, count in result.all():
        by_classification[classification.value] = count

    result = await db.execute(
        select(ContactLog.direction, func.count(ContactLog.id))
        .where(ContactLog.tenant_id == tenant_id)
        .group_by(ContactLog.direction)
    )
    by_direction = {direction: count for direction, count in result.all()}

    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "by_classification": by_classification,
        "emails_sent": by_direction.get(ContactDirection.OUTBOUND, 0),
        "responses": by_direction.get(ContactDirection.INBOUND, 0),
    }
