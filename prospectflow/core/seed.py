"""Seed the global default email templates on app startup."""

import logging
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.models.contact_log import MessageType
from prospectflow.models.email_template import EmailTemplate, DEFAULT_TENANT_ID
from prospectflow.models.lead import SiteClassification

logger = logging.getLogger(__name__)

SIGNATURE = "\n\nAtenciosamente,\nEquipe ProspectFlow"

_FOLLOW_UP_1 = (
    "Re: {{company_name}}",
    "Olá, equipe da {{company_name}}!\n\n"
    "Escrevi há alguns dias sobre a presença digital de vocês em {{city}}. "
    "Sei que a rotina é corrida, então deixo a pergunta de novo: "
    "faz sentido conversarmos 15 minutos esta semana?" + SIGNATURE,
)

_FOLLOW_UP_2 = (
    "Última mensagem sobre a {{company_name}}",
    "Olá, equipe da {{company_name}}!\n\n"
    "Esta é minha última mensagem sobre o assunto. Se em algum momento "
    "quiserem atrair mais clientes de {{segment}} pela internet, é só responder este e-mail." + SIGNATURE,
)

DEFAULT_TEMPLATES = [
    {
        "name": "Sem site - contato inicial",
        "site_classification": SiteClassification.NO_SITE,
        "message_type": MessageType.INITIAL,
        "subject": "Pergunta sobre a {{company_name}}",
        "body": (
            "Olá, equipe da {{company_name}}!\n\n"
            "Encontrei a empresa de vocês em {{city}} e notei que ainda não possuem um site. "
            "Hoje em dia, quem procura {{segment}} começa pelo Google, e ter uma presença digital "
            "forte é essencial para atrair novos clientes.\n\n"
            "Eu ajudo empresas locais a se destacarem na internet e venderem mais. "
            "Teria interesse em ver como eu poderia ajudar a {{company_name}}?" + SIGNATURE
        ),
    },
    {
        "name": "Site fraco - contato inicial",
        "site_classification": SiteClassification.WEAK_SITE,
        "message_type": MessageType.INITIAL,
        "subject": "Uma ideia para o site da {{company_name}}",
        "body": (
            "Olá, equipe da {{company_name}}!\n\n"
            "Visitei {{website}} e vi alguns pontos que podem estar afastando clientes: "
            "o site demora ou não abre bem no celular, e isso pesa na decisão de quem procura {{segment}} em {{city}}.\n\n"
            "Posso mostrar em poucos minutos o que daria para melhorar?" + SIGNATURE
        ),
    },
    {
        "name": "Site sem SEO - contato inicial",
        "site_classification": SiteClassification.SITE_WITHOUT_SEO,
        "message_type": MessageType.INITIAL,
        "subject": "A {{company_name}} aparece no Google?",
        "body": (
            "Olá, equipe da {{company_name}}!\n\n"
            "O site de vocês ({{website}}) está no ar, mas faltam ajustes básicos de SEO "
            "que ajudam o Google a mostrá-lo para quem busca {{segment}} em {{city}}.\n\n"
            "Posso enviar um diagnóstico rápido e sem compromisso?" + SIGNATURE
        ),
    },
]

for _classification in (SiteClassification.NO_SITE, SiteClassification.WEAK_SITE, SiteClassification.SITE_WITHOUT_SEO):
    for _message_type, (_subject, _body) in ((MessageType.FOLLOW_UP_1, _FOLLOW_UP_1), (MessageType.FOLLOW_UP_2, _FOLLOW_UP_2)):
        DEFAULT_TEMPLATES.append({
            "name": f"{_classification.value} - {_message_type.value}",
            "site_classification": _classification,
            "message_type": _message_type,
            "subject": _subject,
            "body": _body,
        })

TEMPLATE_VARIABLES = ["company_name", "segment", "city", "state", "website"]


async def seed_default_templates(db: AsyncSession) -> int:
    """Insert any missing global default template. Returns how many were created."""
    try:
        result = await db.execute(
            select(EmailTemplate.site_classification, EmailTemplate.message_type)
            .where(EmailTemplate.tenant_id == DEFAULT_TENANT_ID)
        )
        existing = {(row[0], row[1]) for row in result.all()}

        created = 0
        for template in DEFAULT_TEMPLATES:
            if (template["site_classification"], template["message_type"]) in existing:
                continue
            db.add(EmailTemplate(
                tenant_id=DEFAULT_TENANT_ID,
                is_default=True,
                variables=TEMPLATE_VARIABLES,
                **template,
            ))
            created += 1

        await db.commit()
    except SQLAlchemyError as e:
        logger.error("Failed to seed default templates: %s", e)
        await db.rollback()
        return 0

    if created:
        logger.info("Seeded %d default email templates", created)
    return created
