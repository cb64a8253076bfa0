"""Contact log: one append-only communication event tied to a lead."""
import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Enum, Boolean, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from prospectflow.core.database import Base
from prospectflow.models.lead import enum_values


class ContactChannel(str, enum.Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class ContactDirection(str, enum.Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"


class MessageType(str, enum.Enum):
    INITIAL = "initial"
    FOLLOW_UP_1 = "follow_up_1"
    FOLLOW_UP_2 = "follow_up_2"
    RESPONSE = "response"


class ContactLog(Base):
    __tablename__ = "contact_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    lead_id = Column(UUID(as_uuid=True), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    channel = Column(Enum(ContactChannel, name="contact_channel", values_callable=enum_values), nullable=False)
    direction = Column(Enum(ContactDirection, name="contact_direction", values_callable=enum_values), nullable=False)
    message_type = Column(Enum(MessageType, name="message_type", values_callable=enum_values), nullable=False)
    subject = Column(String(500), nullable=True)
    content = Column(Text, nullable=True)
    response_content = Column(Text, nullable=True)
    email_address = Column(String(255), nullable=True, index=True)
    provider_message_id = Column(String(255), nullable=True)
    sent_at = Column(DateTime, nullable=True)
    opened_at = Column(DateTime, nullable=True)
    responded_at = Column(DateTime, nullable=True)
    interest_detected = Column(Boolean, nullable=True)
    interest_keywords = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    lead = relationship("Lead", back_populates="contact_logs")
