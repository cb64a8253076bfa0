"""Domain errors raised by the services and translated by the API layer."""


class ProspectFlowError(Exception):
    """Base class for all ProspectFlow domain errors."""

    status_code = 500


class LeadValidationError(ProspectFlowError, ValueError):
    """Input rejected before any external call or write."""

    status_code = 400


class ImportValidationError(LeadValidationError):
    """An import batch had no valid rows left after validation."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class LeadNotFoundError(ProspectFlowError, LookupError):
    status_code = 404


class TaskNotFoundError(ProspectFlowError, LookupError):
    status_code = 404


class TemplateNotFoundError(ProspectFlowError, LookupError):
    status_code = 404


class PersistenceError(ProspectFlowError):
    """The database rejected a write; the session has been rolled back."""

    status_code = 500


class ProviderError(ProspectFlowError):
    """An external provider call the operation cannot do without (maps search) failed."""

    status_code = 502
