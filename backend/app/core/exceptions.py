"""
Domain exceptions raised by the ingestion and analytics services.

The API layer translates these into HTTP errors; services never turn a
missing company into a default value.
"""


class ReputationError(Exception):
    """Base class for reputation pipeline errors."""


class CompanyNotFound(ReputationError):
    def __init__(self, company_id: str):
        self.company_id = company_id
        super().__init__(f"Company with ID {company_id} not found")


class NoCompanyForUser(ReputationError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("No company is associated with this user")


class AcquisitionFailure(ReputationError):
    """Acquisition channel unreachable or unauthorized. Safe to retry the refresh."""

    def __init__(self, strategy: str, message: str = "Acquisition channel unavailable"):
        self.strategy = strategy
        super().__init__(f"{strategy}: {message}")


class MalformedUpstreamResponse(ReputationError):
    """Channel answered, but with nothing that parses as structured data."""


class PersistenceFailure(ReputationError):
    """Batch write failed and was rolled back; nothing from the run is visible."""

    def __init__(self, message: str = "Failed to persist refresh batch"):
        super().__init__(message)
