"""Email template keyed by (tenant, site classification, message type)."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Enum, Boolean, JSON
from sqlalchemy.dialects.postgresql import UUID
from prospectflow.core.database import Base
from prospectflow.models.lead import SiteClassification, enum_values
from prospectflow.models.contact_log import MessageType

# Templates owned by this tenant id are the global defaults.
DEFAULT_TENANT_ID = uuid.UUID("00000000-0000-0000-0000-000000000000")


class EmailTemplate(Base):
    __tablename__ = "email_templates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    site_classification = Column(
        Enum(SiteClassification, name="site_classification", values_callable=enum_values),
        nullable=True,
    )
    message_type = Column(Enum(MessageType, name="message_type", values_callable=enum_values), nullable=False)
    subject = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)
    variables = Column(JSON, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
