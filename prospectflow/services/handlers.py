"""Event handlers that run the next pipeline step for the dispatcher."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.services.ai_client import AICompletionClient
from prospectflow.services.decision_engine import decide
from prospectflow.services.email_sender import EmailSender
from prospectflow.services.events import EventQueue, PipelineEvent, LEAD_NEEDS_ANALYSIS, LEAD_NEEDS_DECISION
from prospectflow.services.site_classifier import SiteFetcher, classify_lead

logger = logging.getLogger(__name__)


def build_handlers(fetcher: SiteFetcher, email_sender: EmailSender, ai_client: AICompletionClient) -> dict:
    """Handlers bound to one set of provider clients, keyed by event kind."""

    async def handle_needs_analysis(db: AsyncSession, event: PipelineEvent, events: EventQueue):
        analysis = await classify_lead(db, event.tenant_id, event.lead_id, fetcher, events)
        logger.info("Lead %s classified as %s", event.lead_id, analysis.site_classification.value)

    async def handle_needs_decision(db: AsyncSession, event: PipelineEvent, events: EventQueue):
        decision = await decide(
            db,
            event.tenant_id,
            event.lead_id,
            email_sender,
            ai_client,
            message_type=event.payload.get("message_type"),
            use_ai_personalization=bool(event.payload.get("use_ai_personalization")),
        )
        logger.info("Decision for lead %s: %s (sent=%s)", event.lead_id, decision.message_type.value, decision.email_sent)

    return {
        LEAD_NEEDS_ANALYSIS: handle_needs_analysis,
        LEAD_NEEDS_DECISION: handle_needs_decision,
    }
