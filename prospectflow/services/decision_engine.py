"""Template selection, variable filling and the send step of a prospecting decision."""

import logging
import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.exceptions import PersistenceError, TemplateNotFoundError
from prospectflow.models.contact_log import ContactLog, ContactChannel, ContactDirection, MessageType
from prospectflow.models.email_template import EmailTemplate, DEFAULT_TENANT_ID
from prospectflow.models.lead import Lead, LeadStatus, SiteClassification
from prospectflow.schemas.pipeline import Decision
from prospectflow.services import lead_store
from prospectflow.services.ai_client import AICompletionClient, extract_json_object
from prospectflow.services.email_sender import EmailSender
from prospectflow.services.normalize import normalize_email

logger = logging.getLogger(__name__)

NEXT_STATUS = {
    MessageType.INITIAL: LeadStatus.CONTACTED,
    MessageType.FOLLOW_UP_1: LeadStatus.FOLLOW_UP_1,
    MessageType.FOLLOW_UP_2: LeadStatus.FOLLOW_UP_2,
}

_MESSAGE_TYPE_BY_STATUS = {
    LeadStatus.NEW: MessageType.INITIAL,
    LeadStatus.CONTACTED: MessageType.FOLLOW_UP_1,
    LeadStatus.FOLLOW_UP_1: MessageType.FOLLOW_UP_2,
}

PLACEHOLDER_FALLBACKS = {
    "company_name": "sua empresa",
    "segment": "seu segmento",
    "city": "sua cidade",
    "state": "",
    "website": "",
}

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

PERSONALIZE_SYSTEM = "Você é um assistente de copywriting. Responda apenas em JSON válido."


def determine_message_type(status: LeadStatus) -> MessageType:
    message_type = _MESSAGE_TYPE_BY_STATUS.get(status)
    if message_type is None:
        # Restarts the sequence for leads outside the outreach stages; see DESIGN.md.
        logger.warning("No message type for lead status %s; falling back to initial", getattr(status, "value", status))
        return MessageType.INITIAL
    return message_type


def fill_template(text: str, lead: Lead) -> str:
    """Substitute {{placeholders}} with lead values; unknown placeholders are removed."""
    def replace(match):
        name = match.group(1)
        if name not in PLACEHOLDER_FALLBACKS:
            return ""
        value = getattr(lead, name, None)
        return str(value) if value else PLACEHOLDER_FALLBACKS[name]

    return _PLACEHOLDER.sub(replace, text or "")


async def _first_template(db: AsyncSession, *criteria) -> EmailTemplate | None:
    result = await db.execute(
        select(EmailTemplate).where(*criteria).order_by(EmailTemplate.created_at).limit(1)
    )
    return result.scalar_one_or_none()


async def find_template(
    db: AsyncSession,
    tenant_id: UUID,
    classification: SiteClassification,
    message_type: MessageType,
) -> EmailTemplate:
    """Tenant template, then the global default for the pair, then any global initial template."""
    template = await _first_template(
        db,
        EmailTemplate.tenant_id == tenant_id,
        EmailTemplate.site_classification == classification,
        EmailTemplate.message_type == message_type,
    )
    if template is None:
        template = await _first_template(
            db,
            EmailTemplate.tenant_id == DEFAULT_TENANT_ID,
            EmailTemplate.site_classification == classification,
            EmailTemplate.message_type == message_type,
        )
    if template is None:
        template = await _first_template(
            db,
            EmailTemplate.tenant_id == DEFAULT_TENANT_ID,
            EmailTemplate.message_type == MessageType.INITIAL,
        )
    if template is None:
        raise TemplateNotFoundError("No suitable template found")
    return template


def _personalize_prompt(subject: str, body: str, lead: Lead) -> str:
    classification = lead.site_classification.value if lead.site_classification else "não analisado"
    return f"""Você é um especialista em copywriting para prospecção B2B de agências de criação de sites.

Dados do lead:
- Empresa: {lead.company_name}
- Segmento: {lead.segment or "não informado"}
- Cidade: {lead.city or "não informada"}
- Site: {lead.website or "não possui"}
- Classificação: {classification}

Mensagem atual:
Assunto: {subject}
Corpo: {body}

Sua tarefa: Personalize sutilmente a mensagem para torná-la mais relevante para este lead específico. Mantenha o tom consultivo e profissional. NÃO mude a estrutura principal, apenas adicione detalhes relevantes ao segmento/cidade quando possível.

Responda APENAS no formato JSON:
{{"subject": "assunto personalizado", "body": "corpo personalizado"}}"""


async def personalize_with_ai(
    subject: str,
    body: str,
    lead: Lead,
    ai_client: AICompletionClient | None,
) -> tuple[str, str, bool]:
    """Returns ``(subject, body, personalized)``; any failure yields the input unchanged."""
    if ai_client is None or not ai_client.enabled:
        logger.info("AI completion not configured, skipping personalization")
        return subject, body, False

    try:
        answer = await ai_client.complete(_personalize_prompt(subject, body, lead), system=PERSONALIZE_SYSTEM)
    except Exception as e:
        logger.warning("AI personalization failed for lead %s: %s", lead.id, e)
        return subject, body, False

    parsed = extract_json_object(answer)
    if not parsed:
        logger.warning("AI personalization for lead %s returned no JSON object", lead.id)
        return subject, body, False

    new_subject = parsed.get("subject") if isinstance(parsed.get("subject"), str) else None
    new_body = parsed.get("body") if isinstance(parsed.get("body"), str) else None
    if not new_subject and not new_body:
        return subject, body, False

    # The model may echo placeholders back
    return (
        fill_template(new_subject or subject, lead),
        fill_template(new_body or body, lead),
        True,
    )


def append_note(notes: Optional[str], line: str) -> str:
    return f"{notes}\n{line}" if notes else line


def _send_blocker(lead: Lead, email_sender: EmailSender | None) -> Optional[str]:
    if lead.opted_out:
        return "Lead opted out"
    if lead.automation_paused:
        return "Automation paused for this lead"
    if not normalize_email(lead.email):
        return "Lead has no usable email address"
    if email_sender is None or not email_sender.enabled:
        return "Email sending is not configured"
    return None


async def decide(
    db: AsyncSession,
    tenant_id: UUID,
    lead_id: UUID,
    email_sender: EmailSender | None,
    ai_client: AICompletionClient | None = None,
    message_type: MessageType | None = None,
    use_ai_personalization: bool = False,
    note_tag: Optional[str] = None,
) -> Decision:
    """Pick and fill the message for a lead and, when possible, send it.

    A successful send appends the outbound contact log and advances the lead
    (status, contact_attempts, last_contact_date) in one commit. With
    ``note_tag`` a dated "[tag] Email enviado em ..." line is appended to the
    lead notes in that same commit. A skipped or failed send leaves the lead as
    it was.
    """
    lead = await lead_store.require_lead(db, tenant_id, lead_id)
    logger.info("Decision engine processing lead %s for tenant %s", lead_id, tenant_id)

    message_type = MessageType(message_type) if message_type else determine_message_type(lead.status)
    if message_type not in NEXT_STATUS:
        raise TemplateNotFoundError(f"No outbound template for message type {message_type.value}")
    classification = lead.site_classification or SiteClassification.NO_SITE
    logger.info("Lead classification: %s, message type: %s", classification.value, message_type.value)

    template = await find_template(db, tenant_id, classification, message_type)
    subject = fill_template(template.subject, lead)
    body = fill_template(template.body, lead)

    personalized = False
    if use_ai_personalization:
        subject, body, personalized = await personalize_with_ai(subject, body, lead, ai_client)

    next_status = NEXT_STATUS[message_type]
    to_email = normalize_email(lead.email)
    logger.info("Decision: template=%s, next_status=%s", template.id, next_status.value)

    decision = Decision(
        lead_id=lead.id,
        template_id=template.id,
        message_type=message_type,
        subject=subject,
        body=body,
        to_email=to_email or lead.email,
        next_status=next_status,
        classification=classification,
        ai_personalized=personalized,
    )

    blocker = _send_blocker(lead, email_sender)
    if blocker:
        logger.info("Skipping email send for lead %s: %s", lead_id, blocker)
        return decision

    result = await email_sender.send(to_email, subject, body)
    if not result.sent:
        decision.email_error = result.error
        return decision

    now = datetime.utcnow()
    db.add(ContactLog(
        tenant_id=tenant_id,
        lead_id=lead.id,
        channel=ContactChannel.EMAIL,
        direction=ContactDirection.OUTBOUND,
        message_type=message_type,
        subject=subject,
        content=body,
        email_address=to_email,
        provider_message_id=result.message_id,
        sent_at=now,
    ))
    changes = {
        "status": next_status,
        "last_contact_date": now,
        "contact_attempts": (lead.contact_attempts or 0) + 1,
    }
    if note_tag:
        changes["notes"] = append_note(lead.notes, f"[{note_tag}] Email enviado em {now:%d/%m/%Y %H:%M}")
    await lead_store.apply_changes(db, lead, changes)

    decision.email_sent = True
    try:
        await lead_store.commit(db, "record sent email")
    except PersistenceError as e:
        # The provider already accepted the message
        logger.error("Email to lead %s was sent but not recorded: %s", lead_id, e)
        decision.email_error = str(e)
    return decision
