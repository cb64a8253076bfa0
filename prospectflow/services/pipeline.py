"""Batch prospecting passes.

Leads are processed one at a time. Each lead's failure is recorded in its own
result entry and the batch carries on; nothing is retried within a run.
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.exceptions import ProspectFlowError
from prospectflow.models.contact_log import ContactLog, ContactDirection
from prospectflow.models.lead import Lead, LeadStatus, SiteClassification
from prospectflow.schemas.pipeline import LeadRunResult
from prospectflow.services import lead_store
from prospectflow.services.ai_client import AICompletionClient
from prospectflow.services.decision_engine import decide, determine_message_type
from prospectflow.services.email_sender import EmailSender
from prospectflow.services.site_classifier import SiteFetcher, classify_lead

logger = logging.getLogger(__name__)

FOLLOW_UP_STATUSES = (LeadStatus.CONTACTED, LeadStatus.FOLLOW_UP_1)
PROSPECT_NOTE_TAG = "Auto-Prospect"
FOLLOW_UP_NOTE_TAG = "Follow-up"


async def already_contacted(db: AsyncSession, tenant_id: UUID, lead: Lead) -> bool:
    """True when an outbound message went to this lead or to its address."""
    conditions = [ContactLog.lead_id == lead.id]
    if lead.email:
        conditions.append(ContactLog.email_address == lead.email.strip().lower())
    result = await db.execute(
        select(ContactLog.id)
        .where(
            ContactLog.tenant_id == tenant_id,
            ContactLog.direction == ContactDirection.OUTBOUND,
            or_(*conditions),
        )
        .limit(1)
    )
    return result.first() is not None


async def _eligible_leads(db: AsyncSession, tenant_id: UUID, statuses, limit: int, contacted_before=None) -> list[Lead]:
    query = select(Lead).where(
        Lead.tenant_id == tenant_id,
        Lead.status.in_(statuses),
        Lead.email.is_not(None),
        Lead.email != "",
        Lead.automation_paused.is_(False),
        Lead.opted_out.is_(False),
    )
    if contacted_before is not None:
        query = query.where(Lead.last_contact_date.is_not(None), Lead.last_contact_date <= contacted_before)
    query = query.order_by(Lead.position, Lead.created_at).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


def _sent_or_error(lead_id: UUID, decision) -> LeadRunResult:
    detail = {
        "message_type": decision.message_type.value,
        "template_id": str(decision.template_id),
        "to_email": decision.to_email,
    }
    if decision.email_sent:
        # email_error here means the send went out but was not recorded
        return LeadRunResult(id=lead_id, status="sent", reason=decision.email_error, detail=detail)
    if decision.email_error:
        return LeadRunResult(id=lead_id, status="error", reason=decision.email_error, detail=detail)
    # Send was not possible (sender off, paused lead); nothing changed
    return LeadRunResult(id=lead_id, status="skipped", reason="not_sent", detail=detail)


async def _record_failure(db: AsyncSession, lead_id: UUID, e: Exception) -> LeadRunResult:
    await db.rollback()
    if isinstance(e, ProspectFlowError):
        logger.error("Error processing lead %s: %s", lead_id, e)
    else:
        logger.exception("Unexpected error processing lead %s", lead_id)
    return LeadRunResult(id=lead_id, status="error", reason=str(e) or type(e).__name__)


async def run_prospecting(
    db: AsyncSession,
    tenant_id: UUID,
    limit: int,
    fetcher: SiteFetcher,
    email_sender: EmailSender | None,
    ai_client: AICompletionClient | None = None,
) -> dict:
    """First-touch pass over ``new`` leads with an email address.

    Leads already written to (by id or address) are skipped, unanalysed sites
    are classified inline, and leads whose site is fine are left alone.
    """
    leads = await _eligible_leads(db, tenant_id, (LeadStatus.NEW,), limit)
    if not leads:
        logger.info("No eligible leads for tenant %s", tenant_id)
        return {"processed": 0, "results": []}

    results = []
    for lead_id in [lead.id for lead in leads]:
        try:
            lead = await lead_store.require_lead(db, tenant_id, lead_id)
            if await already_contacted(db, tenant_id, lead):
                logger.info("Skipping duplicate lead: %s", lead.email)
                results.append(LeadRunResult(id=lead_id, status="skipped", reason="duplicate_email"))
                continue

            classification = lead.site_classification
            if lead.site_analysis_date is None:
                analysis = await classify_lead(db, tenant_id, lead_id, fetcher, events=None)
                classification = analysis.site_classification

            if classification == SiteClassification.SITE_OK:
                results.append(LeadRunResult(
                    id=lead_id, status="skipped", reason="site_ok",
                    detail={"classification": classification.value},
                ))
                continue

            decision = await decide(db, tenant_id, lead_id, email_sender, ai_client,
                                    note_tag=PROSPECT_NOTE_TAG)
            results.append(_sent_or_error(lead_id, decision))
        except Exception as e:
            results.append(await _record_failure(db, lead_id, e))

    logger.info("Prospecting pass for tenant %s processed %d leads", tenant_id, len(results))
    return {"processed": len(results), "results": results}


async def run_follow_ups(
    db: AsyncSession,
    tenant_id: UUID,
    limit: int,
    min_days: int,
    email_sender: EmailSender | None,
    ai_client: AICompletionClient | None = None,
) -> dict:
    """Next message for contacted leads whose last touch is at least ``min_days`` old."""
    cutoff = datetime.utcnow() - timedelta(days=min_days)
    leads = await _eligible_leads(db, tenant_id, FOLLOW_UP_STATUSES, limit, contacted_before=cutoff)

    results = []
    for lead_id in [lead.id for lead in leads]:
        try:
            lead = await lead_store.require_lead(db, tenant_id, lead_id)
            message_type = determine_message_type(lead.status)
            decision = await decide(db, tenant_id, lead_id, email_sender, ai_client,
                                    message_type=message_type, note_tag=FOLLOW_UP_NOTE_TAG)
            results.append(_sent_or_error(lead_id, decision))
        except Exception as e:
            results.append(await _record_failure(db, lead_id, e))

    logger.info("Follow-up pass for tenant %s processed %d leads", tenant_id, len(results))
    return {"processed": len(results), "results": results}
