"""Exception hierarchy for the confirmation sync.

    ConfirmationSyncError (base)
    ├── LabInterfaceUnavailable - upstream non-2xx response or transport error
    ├── StoreReadFailed - lookup against the database failed
    ├── StoreWriteFailed - upsert against the database failed
    └── FatalStartupError - configuration or credentials unusable before a run

Payloads with missing fields are not an error; see
``ParsedConfirmation.missing_fields``.
"""


class ConfirmationSyncError(Exception):
    """Base exception for confirmation sync failures."""

    def __init__(self, message: str, correlation_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.correlation_id = correlation_id


class LabInterfaceUnavailable(ConfirmationSyncError):
    """The lab interface API rejected a request or could not be reached."""

    def __init__(
        self,
        message: str,
        correlation_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, correlation_id)
        self.status_code = status_code


class StoreReadFailed(ConfirmationSyncError):
    """Reading from the confirmation store failed."""


class StoreWriteFailed(ConfirmationSyncError):
    """Writing to the confirmation store failed."""


class FatalStartupError(ConfirmationSyncError):
    """The sync cannot start (missing credentials, bad configuration)."""
