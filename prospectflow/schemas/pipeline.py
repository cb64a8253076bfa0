"""Pydantic schemas for the pipeline endpoints and the results the services return.

Every pipeline endpoint answers with an envelope: ``{"success": true, ...payload}``
or ``{"success": false, "error": "..."}``.
"""

from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from prospectflow.models.lead import LeadSource, LeadStatus, SiteClassification
from prospectflow.models.contact_log import ContactChannel, MessageType
from prospectflow.schemas.lead import PartialLead


# ===== Service results =====

class SiteAnalysis(BaseModel):
    """Outcome of analysing one website."""
    site_active: bool
    site_performance_score: int
    site_indexed: bool
    site_classification: SiteClassification


class InterestAnalysis(BaseModel):
    """Outcome of scanning one inbound message."""
    interest_detected: bool
    opted_out: bool
    interest_keywords: list[str] = Field(default_factory=list)
    confidence: float


class Decision(BaseModel):
    """What the decision engine chose for a lead, and whether it was sent."""
    lead_id: UUID
    template_id: UUID
    message_type: MessageType
    subject: str
    body: str
    to_email: Optional[str] = None
    next_status: LeadStatus
    classification: SiteClassification
    ai_personalized: bool = False
    email_sent: bool = False
    email_error: Optional[str] = None


class ImportResult(BaseModel):
    imported: int
    duplicates: int
    errors: list[str] = Field(default_factory=list)
    lead_ids: list[UUID] = Field(default_factory=list)


# ===== Requests =====

class ImportRequest(BaseModel):
    leads: list[PartialLead]
    source: LeadSource = LeadSource.CSV_IMPORT


class CSVImportRequest(BaseModel):
    csv_text: str
    source: LeadSource = LeadSource.CSV_IMPORT


class SearchRequest(BaseModel):
    query: Optional[str] = None
    limit: int = Field(default=10, ge=1, le=60)
    site_filter: Literal["all", "with_site", "without_site"] = "all"


class IntentSearchRequest(BaseModel):
    query: Optional[str] = None


class AnalysisRequest(BaseModel):
    lead_id: Optional[UUID] = None
    website: Optional[str] = None
    batch: bool = False
    limit: int = Field(default=10, ge=1, le=100)


class InterestRequest(BaseModel):
    lead_id: UUID
    message: str
    channel: ContactChannel = ContactChannel.EMAIL


class DecisionRequest(BaseModel):
    lead_id: UUID
    message_type: Optional[Literal["initial", "follow_up_1", "follow_up_2"]] = None
    use_ai_personalization: bool = False


class ProspectRequest(BaseModel):
    limit: int = Field(default=5, ge=1, le=50)


class FollowUpRequest(BaseModel):
    limit: int = Field(default=10, ge=1, le=50)
    min_days: Optional[int] = Field(default=None, ge=0)


class LeadRunResult(BaseModel):
    """Per-lead entry of a batch run; one failing lead never aborts the batch."""
    id: UUID
    status: Literal["sent", "skipped", "error", "analyzed"]
    reason: Optional[str] = None
    detail: dict[str, Any] = Field(default_factory=dict)
