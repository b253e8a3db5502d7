"""Exception hierarchy for credential and order retrieval failures."""


class SpApiError(Exception):
    """Base class for every error raised by spapi_oauth."""

    reconnect_required = False
    retryable = False


class ConfigurationError(SpApiError):
    """Deployment configuration is missing or invalid. Never retried."""


class CallbackError(SpApiError):
    """The OAuth redirect was rejected, malformed, or carried an error."""


class CredentialStoreError(SpApiError):
    """The credential store could not be read or written."""


class DisconnectedError(SpApiError):
    """No usable credential for the account; the seller must authorize again."""

    reconnect_required = True


class _TokenEndpointError(SpApiError):
    def __init__(self, message: str, error: str | None = None, description: str | None = None):
        super().__init__(message)
        self.error = error
        self.description = description


class AuthExchangeError(_TokenEndpointError):
    """The authorization code could not be exchanged. Codes are single-use."""

    reconnect_required = True


class RefreshError(_TokenEndpointError):
    """The refresh grant was rejected, usually because access was revoked."""

    reconnect_required = True


class AuthenticationError(SpApiError):
    """The API rejected the access token (HTTP 401)."""

    reconnect_required = True


class AccessDeniedError(SpApiError):
    """The account is not authorized for the requested API role (HTTP 403)."""

    def __init__(self, message: str, scope: str | None = None):
        super().__init__(message)
        self.scope = scope


class RateLimitedError(SpApiError):
    """The API throttled the request (HTTP 429)."""

    retryable = True

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class ApiError(SpApiError):
    """Any other non-success API response."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class NetworkError(SpApiError):
    """Transport failure or timeout. Safe to retry the whole operation."""

    retryable = True


class RetrievalCancelledError(SpApiError):
    """The caller cancelled an order retrieval between pages."""
