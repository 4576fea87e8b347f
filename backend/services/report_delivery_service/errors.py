"""
Domain errors raised by the report delivery engine.

Hard errors (ContentNotFoundError, TransportError) fail an execution and are
recorded on the job. Soft errors (RefreshError, WarehouseError raised while
resolving a Query variable) are absorbed where they occur and only degrade
the rendered output. Validation and transition errors are raised to the
caller before anything is executed.
"""


class ReportDeliveryError(Exception):
    """Base class for all report delivery errors."""


class JobValidationError(ReportDeliveryError):
    """Job configuration is incomplete or inconsistent."""


class JobNotFoundError(ReportDeliveryError):
    """No scheduled report exists with the given id."""


class ContentNotFoundError(ReportDeliveryError):
    """The presentation or template a job is bound to no longer exists."""


class RefreshError(ReportDeliveryError):
    """A data-bound element failed to refresh its query."""

    def __init__(self, element_id: str, message: str) -> None:
        self.element_id = element_id
        super().__init__(f"Element {element_id} failed to refresh: {message}")


class WarehouseError(ReportDeliveryError):
    """The warehouse rejected a query or could not be reached."""


class TransportError(ReportDeliveryError):
    """The mail transport failed to send a message."""


class InvalidTransitionError(ReportDeliveryError):
    """The requested state transition is not allowed from the job's current state."""
