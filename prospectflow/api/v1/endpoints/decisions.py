"""Decision endpoint: choose, fill and (when possible) send the next message for a lead."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.database import get_db
from prospectflow.core.deps import get_tenant_id, get_email_sender, get_ai_client
from prospectflow.schemas.pipeline import DecisionRequest
from prospectflow.services.ai_client import AICompletionClient
from prospectflow.services.decision_engine import decide
from prospectflow.services.email_sender import EmailSender

router = APIRouter()


@router.post("/")
async def make_decision(
    request: DecisionRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
    ai_client: AICompletionClient = Depends(get_ai_client),
):
    decision = await decide(
        db,
        tenant_id,
        request.lead_id,
        email_sender,
        ai_client,
        message_type=request.message_type,
        use_ai_personalization=request.use_ai_personalization,
    )
    return {"success": True, "decision": decision.model_dump(mode="json")}
