"""Keyword-based interest and opt-out detection for inbound replies."""

import logging
import unicodedata
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.models.contact_log import ContactLog, ContactChannel, ContactDirection, MessageType
from prospectflow.models.lead import LeadStatus
from prospectflow.models.task import Task, TaskPriority, TaskStatus
from prospectflow.schemas.pipeline import InterestAnalysis
from prospectflow.services import lead_store

logger = logging.getLogger(__name__)

# Checked first; any match wins over interest.
OPTOUT_KEYWORDS = [
    "não tenho interesse",
    "não quero",
    "pare de enviar",
    "remover",
    "descadastrar",
    "não me envie",
    "spam",
    "cancelar",
]

INTEREST_KEYWORDS = [
    "quero saber mais",
    "gostaria de saber",
    "quanto custa",
    "qual o valor",
    "valor",
    "preço",
    "orçamento",
    "fazer um site",
    "criar um site",
    "criar site",
    "novo site",
    "melhorar o site",
    "atualizar o site",
    "reformular",
    "interessado",
    "me interessa",
    "tenho interesse",
    "pode me ligar",
    "meu contato",
    "meu telefone",
    "vamos conversar",
    "marcar uma reunião",
    "agendar",
    "proposta",
    "apresentação",
]

KEYWORD_WEIGHT = 0.3


def normalize_text(text: str) -> str:
    """Lower-case and strip diacritics ("Preço" -> "preco")."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


_NORMALIZED_OPTOUT = [(kw, normalize_text(kw)) for kw in OPTOUT_KEYWORDS]
_NORMALIZED_INTEREST = [(kw, normalize_text(kw)) for kw in INTEREST_KEYWORDS]


def detect_interest(message: str) -> InterestAnalysis:
    normalized = normalize_text(message or "")

    for _, keyword in _NORMALIZED_OPTOUT:
        if keyword in normalized:
            return InterestAnalysis(
                interest_detected=False,
                opted_out=True,
                interest_keywords=[],
                confidence=1.0,
            )

    found = [original for original, keyword in _NORMALIZED_INTEREST if keyword in normalized]
    return InterestAnalysis(
        interest_detected=bool(found),
        opted_out=False,
        interest_keywords=found,
        confidence=min(len(found) * KEYWORD_WEIGHT, 1.0),
    )


async def process_inbound_message(
    db: AsyncSession,
    tenant_id: UUID,
    lead_id: UUID,
    message: str,
    channel: ContactChannel = ContactChannel.EMAIL,
) -> InterestAnalysis:
    """Log an inbound reply and move the lead according to what it says.

    The contact log, the lead update and (on interest) the follow-up task are
    committed together. Raises LeadNotFoundError or PersistenceError; nothing
    is retried.
    """
    lead = await lead_store.require_lead(db, tenant_id, lead_id)
    logger.info("Analyzing message for lead %s", lead_id)

    analysis = detect_interest(message)
    now = datetime.utcnow()

    db.add(ContactLog(
        tenant_id=tenant_id,
        lead_id=lead_id,
        channel=channel,
        direction=ContactDirection.INBOUND,
        message_type=MessageType.RESPONSE,
        response_content=message,
        interest_detected=analysis.interest_detected,
        interest_keywords=analysis.interest_keywords,
        responded_at=now,
    ))

    if analysis.opted_out:
        await lead_store.apply_changes(db, lead, {
            "status": LeadStatus.LOST,
            "opted_out": True,
            "opted_out_date": now,
            "automation_paused": True,
        })
        logger.info("Lead %s opted out", lead_id)
    elif analysis.interest_detected:
        await lead_store.apply_changes(db, lead, {
            "status": LeadStatus.INTERESTED,
            "automation_paused": True,
        })
        db.add(Task(
            tenant_id=tenant_id,
            lead_id=lead_id,
            title=f"Interesse detectado: {lead.company_name or 'Lead'}",
            description=(
                f"Palavras-chave encontradas: {', '.join(analysis.interest_keywords)}\n\n"
                f"Mensagem original:\n\"{message}\""
            ),
            task_type="follow_up",
            priority=TaskPriority.URGENT,
            status=TaskStatus.PENDING,
            due_date=now,
        ))
        logger.info("Interest detected for lead %s, task created", lead_id)
    else:
        await lead_store.apply_changes(db, lead, {"status": LeadStatus.ENGAGED})

    await lead_store.commit(db, "record inbound message")
    return analysis
