"""Shared Password Safe sessions and credential checkout.

Example:
    >>> from passwordsafe_utils import (
    ...     CredentialLeaseClient, LeasePolicy, PasswordSafeApi, SessionManager,
    ... )
    >>> api = PasswordSafeApi(url="https://ps.example.com/BeyondTrust/api/public/v3",
    ...                       api_key="...", account_name="svc-terraform")
    >>> sessions = SessionManager(api)
    >>> leases = CredentialLeaseClient(api, sessions, LeasePolicy(reason="deploy"))
    >>> password = leases.checkout("Computer01", "User04")
"""

from passwordsafe_utils.lease import CredentialLeaseClient, LeasePolicy
from passwordsafe_utils.passwordsafe_api import PasswordSafeApi
from passwordsafe_utils.secrets_safe import SecretsSafeClient
from passwordsafe_utils.session import SessionManager

__all__ = [
    "CredentialLeaseClient",
    "LeasePolicy",
    "PasswordSafeApi",
    "SecretsSafeClient",
    "SessionManager",
]
