"""Custom exceptions for job management.

Every error belongs to one of four categories, exposed to API callers as
``error`` codes:

    invalid_argument     - malformed identifiers, caller bug, do not retry
    not_found            - provider/inbox entry/job absent (may be expired)
    failed_precondition  - state conflict, expected under contention
    internal             - store/transport failure, safe to retry with backoff
"""


class JobServiceError(Exception):
    """Base class for job management errors."""
    code = "internal"
    http_status = 500
    default_message = "Job service error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


# ===================== Categories =====================

class InvalidArgumentError(JobServiceError):
    """Raised when a request carries missing or malformed identifiers."""
    code = "invalid_argument"
    http_status = 400
    default_message = "Invalid argument"


class NotFoundError(JobServiceError):
    """Raised when a provider, inbox entry or job cannot be found."""
    code = "not_found"
    http_status = 404
    default_message = "Not found"


class FailedPreconditionError(JobServiceError):
    """Raised when the job is not in a state that allows the operation."""
    code = "failed_precondition"
    http_status = 409
    default_message = "Job no longer available"


class InternalError(JobServiceError):
    """Raised when the backing store fails; the caller may retry."""
    code = "internal"
    http_status = 503
    default_message = "Temporary failure, please retry"


# ===================== Not found =====================

class ProviderNotFoundError(NotFoundError):
    """Raised when the provider profile does not exist."""
    default_message = "Provider not found"


class InboxEntryNotFoundError(NotFoundError):
    """Raised when the job is not (or no longer) in the provider's inbox."""
    default_message = "Job not found in your inbox"


class JobNotFoundError(NotFoundError):
    """Raised when the job container or the job at the stored index is gone."""
    default_message = "Booking not found"


# ===================== Failed precondition =====================

class BookingMismatchError(FailedPreconditionError):
    """Raised when the job at the stored index carries a different booking id."""
    default_message = "Booking ID mismatch"


class JobAlreadyAcceptedError(FailedPreconditionError):
    """Raised when another provider has already claimed the job."""
    default_message = "Job has already been accepted by another provider"


class ProviderNotNotifiedError(FailedPreconditionError):
    """Raised when the provider was not part of the job's notified set."""
    default_message = "Provider was not notified for this job"


class InvalidTransitionError(FailedPreconditionError):
    """Raised when a status change is not allowed by the job lifecycle."""
    default_message = "Status transition not allowed"


class NotAssignedProviderError(FailedPreconditionError):
    """Raised when someone other than the assigned provider updates a job."""
    default_message = "Job is not assigned to you"
