"""Quote domain exceptions."""

from cpq.models.enums import QuoteStatus
from cpq.services.exceptions import NotFoundError, ServiceError, UnavailableError


class QuoteNotFound(NotFoundError):
    """Quote not found."""

    pass


class AllocationError(UnavailableError):
    """A quote number could not be allocated.

    The quote must not be created until this is resolved; there is no
    fallback numbering.
    """

    pass


class CounterNotFoundError(AllocationError):
    """The tenant's counter record has not been provisioned."""

    pass


class StatusWriteError(ServiceError):
    """Durable status update for a dropped board card failed."""

    def __init__(self, quote_id: str, status: QuoteStatus):
        self.quote_id = quote_id
        self.status = status
        super().__init__(f"Could not set quote {quote_id} to {status.value}")
