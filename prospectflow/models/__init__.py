from prospectflow.models.lead import Lead, LeadSource, LeadStatus, SiteClassification  # noqa: F401
from prospectflow.models.contact_log import ContactLog, ContactChannel, ContactDirection, MessageType  # noqa: F401
from prospectflow.models.email_template import EmailTemplate, DEFAULT_TENANT_ID  # noqa: F401
from prospectflow.models.task import Task, TaskPriority, TaskStatus  # noqa: F401
from prospectflow.models.user import User  # noqa: F401
