"""Exceptions raised by the Password Safe API client and its callers."""


class PasswordSafeError(Exception):
    """Base class for all Password Safe errors."""


class InputValidationError(PasswordSafeError, ValueError):
    """Caller input rejected before any network call."""


class SessionNotAcquiredError(PasswordSafeError):
    """Session released more often than it was acquired."""


class DecodeError(PasswordSafeError):
    """Response body could not be decoded into the expected shape."""


class BrokerUnavailableError(PasswordSafeError):
    """Transport level failure talking to the broker (connection, timeout)."""


class ApiError(PasswordSafeError):
    """Broker answered with a status code other than 200, 201 or 204."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"got a non 200 status code: {status_code} - {body}")


class AuthenticationError(ApiError):
    """Sign-in rejected by the broker."""


class ManagedAccountNotFoundError(ApiError):
    """No managed account matches the system and account name."""


class SecretNotFoundError(PasswordSafeError):
    """No Secrets Safe secret matches the path and title."""
