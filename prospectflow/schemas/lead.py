"""Pydantic schemas for Leads."""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field
from typing import Optional
from prospectflow.models.lead import LeadSource, LeadStatus, SiteClassification


class PartialLead(BaseModel):
    """A lead record before validation, as produced by CSV parsing, manual entry or search."""
    company_name: Optional[str] = None
    segment: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    website: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = None


class LeadOut(BaseModel):
    """Schema for returning lead details."""
    id: UUID
    tenant_id: UUID
    company_name: str
    segment: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    website: Optional[str] = None
    site_classification: Optional[SiteClassification] = None
    site_active: Optional[bool] = None
    site_performance_score: Optional[int] = None
    site_indexed: Optional[bool] = None
    site_analysis_date: Optional[datetime] = None
    status: LeadStatus
    source: LeadSource
    score: int = 0
    automation_paused: bool = False
    opted_out: bool = False
    opted_out_date: Optional[datetime] = None
    contact_attempts: int = 0
    last_contact_date: Optional[datetime] = None
    position: float = 0.0
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeadUpdate(BaseModel):
    """Editable fields from the lead details sheet."""
    company_name: Optional[str] = None
    segment: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    website: Optional[str] = None
    score: Optional[int] = None
    automation_paused: Optional[bool] = None
    tags: Optional[list[str]] = None
    notes: Optional[str] = None


class LeadMove(BaseModel):
    """Kanban drag: destination column and index within it (None appends)."""
    status: LeadStatus
    index: Optional[int] = Field(default=None, ge=0)


class LeadDeleteRequest(BaseModel):
    ids: list[UUID]


class LeadStatsOut(BaseModel):
    """Schema for lead statistics."""
    total: int
    by_status: dict[str, int]
    by_classification: dict[str, int]
    emails_sent: int
    responses: int
