"""Lead model for ProspectFlow."""
import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Enum, Boolean, Integer, Float, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from prospectflow.core.database import Base


def enum_values(enum_cls) -> list[str]:
    """Persist enum members by value ("follow_up_1") rather than by name."""
    return [member.value for member in enum_cls]


class LeadSource(str, enum.Enum):
    """Lead source enum."""
    MANUAL = "manual"
    CSV_IMPORT = "csv_import"
    GOOGLE_MAPS = "google_maps"
    SOCIAL_SEARCH = "social_search"


class LeadStatus(str, enum.Enum):
    """Pipeline stage, in board order."""
    NEW = "new"
    CONTACTED = "contacted"
    FOLLOW_UP_1 = "follow_up_1"
    FOLLOW_UP_2 = "follow_up_2"
    ENGAGED = "engaged"
    INTERESTED = "interested"
    HUMAN_HANDOFF = "human_handoff"
    LOST = "lost"


class SiteClassification(str, enum.Enum):
    """Website quality category. PENDING is display-only and never stored by analysis."""
    NO_SITE = "no_site"
    WEAK_SITE = "weak_site"
    SITE_WITHOUT_SEO = "site_without_seo"
    SITE_OK = "site_ok"
    PENDING = "pending"


class Lead(Base):
    """A prospective customer business, owned by one tenant."""
    __tablename__ = "leads"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    company_name = Column(String(255), nullable=False)
    segment = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    state = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(50), nullable=True)
    whatsapp = Column(String(50), nullable=True)
    website = Column(String(500), nullable=True, index=True)

    # Site analysis
    site_classification = Column(
        Enum(SiteClassification, name="site_classification", values_callable=enum_values),
        nullable=True,
        index=True,
    )
    site_active = Column(Boolean, nullable=True)
    site_performance_score = Column(Integer, nullable=True)
    site_indexed = Column(Boolean, nullable=True)
    site_analysis_date = Column(DateTime, nullable=True)

    # Pipeline
    status = Column(
        Enum(LeadStatus, name="lead_status", values_callable=enum_values),
        nullable=False,
        default=LeadStatus.NEW,
        index=True,
    )
    source = Column(
        Enum(LeadSource, name="lead_source", values_callable=enum_values),
        nullable=False,
        default=LeadSource.MANUAL,
    )
    score = Column(Integer, nullable=False, default=0)
    automation_paused = Column(Boolean, nullable=False, default=False)
    opted_out = Column(Boolean, nullable=False, default=False)
    opted_out_date = Column(DateTime, nullable=True)
    contact_attempts = Column(Integer, nullable=False, default=0)
    last_contact_date = Column(DateTime, nullable=True)
    position = Column(Float, nullable=False, default=0.0)

    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    contact_logs = relationship("ContactLog", back_populates="lead", cascade="all, delete-orphan")
    tasks = relationship("Task", back_populates="lead")

    def __repr__(self):
        return f"<Lead {self.company_name} [{self.status}]>"
