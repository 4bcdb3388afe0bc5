"""
Exception hierarchy for the location tracker client.

All client exceptions inherit from TrackerError so callers can catch any
client failure with a single except clause. Remote failures are raised by
LocationServiceClient as ConnectivityError subclasses and are absorbed by
the SyncEngine, which turns them into pending/offline state.
"""


class TrackerError(Exception):
    """
    Base exception for all client errors.

    Attributes:
        message: Human readable description
        details: Optional structured context
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ValidationError(TrackerError):
    """
    Raised when a record is refused before any network call.

    Covers unknown types, empty notes, non-finite coordinates and
    duplicate identifiers.
    """

    pass


class NotFoundError(TrackerError):
    """
    Raised when the service reports an unknown identifier (HTTP 404).
    """

    pass


class ConnectivityError(TrackerError):
    """
    Exception raised when communication with the location service fails.

    This includes network errors, timeouts, authentication failures and
    non-2xx responses.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.response_body = response_body


class RemoteTimeoutError(ConnectivityError):
    """
    The service did not respond within the configured timeout.
    """

    pass


class RemoteAuthenticationError(ConnectivityError):
    """
    The service rejected the API key (HTTP 401/403).
    """

    pass


class RemoteResponseError(ConnectivityError):
    """
    The service answered with a non-2xx status or an unexpected body.
    """

    pass


class ServerError(RemoteResponseError):
    """
    The service reported an unexpected fault (HTTP 5xx).
    """

    pass


class StorageError(TrackerError):
    """
    Raised when a persisted blob cannot be read or written.
    """

    pass
