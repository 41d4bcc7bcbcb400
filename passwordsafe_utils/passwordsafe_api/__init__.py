"""Password Safe API client, models and errors.

Example:
    >>> from passwordsafe_utils.passwordsafe_api import PasswordSafeApi
    >>> api = PasswordSafeApi(url="https://ps.example.com/BeyondTrust/api/public/v3",
    ...                       api_key="...", account_name="svc-terraform")
    >>> session = api.sign_in()
"""

from passwordsafe_utils.passwordsafe_api.client import (
    TIMEOUT,
    PasswordSafeApi,
    PasswordSafeApiCallContext,
)
from passwordsafe_utils.passwordsafe_api.errors import (
    ApiError,
    AuthenticationError,
    BrokerUnavailableError,
    DecodeError,
    InputValidationError,
    ManagedAccountNotFoundError,
    PasswordSafeError,
    SecretNotFoundError,
    SessionNotAcquiredError,
)
from passwordsafe_utils.passwordsafe_api.models import (
    ConflictOption,
    CredentialLease,
    CredentialRequest,
    ManagedAccountRef,
    SecretsSafeSecret,
    Session,
)

__all__ = [
    "TIMEOUT",
    "ApiError",
    "AuthenticationError",
    "BrokerUnavailableError",
    "ConflictOption",
    "CredentialLease",
    "CredentialRequest",
    "DecodeError",
    "InputValidationError",
    "ManagedAccountNotFoundError",
    "ManagedAccountRef",
    "PasswordSafeApi",
    "PasswordSafeApiCallContext",
    "PasswordSafeError",
    "SecretNotFoundError",
    "SecretsSafeSecret",
    "Session",
    "SessionNotAcquiredError",
]
