"""Password Safe API client with hook system.

Stateless wrapper around the Password Safe public REST API. Session state is
kept by the broker and attributed to this client through the cookie jar of
the underlying httpx client; which calls happen when (and how often sign-in
and sign-out happen) is decided by the callers, see
passwordsafe_utils.session.SessionManager.
"""

import contextvars
import json
import time
import urllib.parse
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

import httpx
import structlog
from pydantic import ValidationError

from passwordsafe_utils.hooks import Hooks, invoke_with_hooks
from passwordsafe_utils.metrics import (
    passwordsafe_request,
    passwordsafe_request_duration,
    passwordsafe_request_errors,
)
from passwordsafe_utils.passwordsafe_api.errors import (
    ApiError,
    AuthenticationError,
    BrokerUnavailableError,
    DecodeError,
    ManagedAccountNotFoundError,
)
from passwordsafe_utils.passwordsafe_api.models import (
    CredentialRequest,
    ManagedAccountRef,
    SecretsSafeSecret,
    Session,
)

if TYPE_CHECKING:
    from passwordsafe_utils.config import Settings

logger = structlog.get_logger(__name__)

TIMEOUT = 30
SUCCESS_STATUS_CODES = frozenset({200, 201, 204})

SIGN_IN_PATH = "Auth/SignAppin"
SIGN_OUT_PATH = "Auth/Signout"
MANAGED_ACCOUNTS_PATH = "ManagedAccounts"
REQUESTS_PATH = "Requests"
CREDENTIALS_PATH = "Credentials/{request_id}"
CHECKIN_PATH = "Requests/{request_id}/checkin"
SECRETS_PATH = "secrets-safe/secrets"
SECRET_FILE_PATH = "secrets-safe/secrets/{secret_id}/file/download"

# tuple stack so nested calls keep their own start time
_latency_tracker: contextvars.ContextVar[tuple[float, ...]] = contextvars.ContextVar(
    f"{__name__}.latency_tracker", default=()
)


@dataclass(frozen=True)
class PasswordSafeApiCallContext:
    """Context information passed to API call hooks.

    Attributes:
        method: API method name (e.g., "requests.create")
        verb: HTTP verb (e.g., "POST")
        id: Password Safe instance identifier (base URL)
    """

    method: str
    verb: str
    id: str


def _metrics_hook(context: PasswordSafeApiCallContext) -> None:
    """Built-in Prometheus metrics hook."""
    passwordsafe_request.labels(context.method, context.verb).inc()


def _error_metrics_hook(context: PasswordSafeApiCallContext) -> None:
    passwordsafe_request_errors.labels(context.method, context.verb).inc()


def _latency_start_hook(_context: PasswordSafeApiCallContext) -> None:
    """Built-in hook to start latency measurement."""
    _latency_tracker.set((*_latency_tracker.get(), time.perf_counter()))


def _latency_end_hook(context: PasswordSafeApiCallContext) -> None:
    """Built-in hook to record latency measurement."""
    stack = _latency_tracker.get()
    start_time = stack[-1]
    _latency_tracker.set(stack[:-1])
    duration = time.perf_counter() - start_time
    passwordsafe_request_duration.labels(context.method, context.verb).observe(
        duration
    )


def _request_log_hook(context: PasswordSafeApiCallContext) -> None:
    """Built-in hook for logging API requests."""
    logger.debug("API request", method=context.method, verb=context.verb, id=context.id)


BUILTIN_HOOKS: Hooks[PasswordSafeApiCallContext] = Hooks(
    pre_hooks=[_metrics_hook, _request_log_hook, _latency_start_hook],
    post_hooks=[_latency_end_hook],
    error_hooks=[_error_metrics_hook],
)


def authorization_header(api_key: str, account_name: str) -> str:
    """Build the PS-Auth authorization header value.

    Example:
        >>> authorization_header("key", "svc-terraform")
        'PS-Auth key=key;runas=svc-terraform;'
    """
    return f"PS-Auth key={api_key};runas={account_name};"


def _segment(value: str) -> str:
    """Escape a broker supplied id for use as a single URL path segment."""
    return urllib.parse.quote(value, safe="")


def decode_json_string(text: str) -> str:
    """Decode a body that carries a single JSON string literal.

    The credentials endpoint returns the secret quoted, e.g. '"s3cr3t"'.

    Raises:
        DecodeError: body is not valid JSON or not a string literal
    """
    try:
        value = json.loads(text)
    except ValueError as e:
        raise DecodeError(f"Credential response is not a JSON string: {e}") from e
    if not isinstance(value, str):
        raise DecodeError(
            f"Credential response is a JSON {type(value).__name__}, expected a string"
        )
    return value


class PasswordSafeApi:
    """Password Safe API client with hook system.

    Hook System:
    - Always includes built-in hooks (metrics, logging, latency, error counter)
    - Supports additional custom hooks via the hooks parameter
    - Hooks receive PasswordSafeApiCallContext with method, verb, id

    Example:
        >>> with PasswordSafeApi(
        ...     url="https://ps.example.com/BeyondTrust/api/public/v3",
        ...     api_key="...",
        ...     account_name="svc-terraform",
        ... ) as api:
        ...     session = api.sign_in()
        ...     account = api.managed_account("Computer01", "User04")
        ...     api.sign_out()
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        account_name: str,
        timeout: int = TIMEOUT,
        max_retries: int = 3,
        verify: bool = True,
        hooks: Hooks[PasswordSafeApiCallContext] | None = None,
    ) -> None:
        """Initialize Password Safe API client.

        Args:
            url: API base URL including the API path
                (e.g., "https://ps.example.com/BeyondTrust/api/public/v3")
            api_key: Password Safe API registration key
            account_name: Password Safe user the key runs as
            timeout: API request timeout in seconds (default: 30)
            max_retries: Connection retries of the HTTP transport (default: 3)
            verify: Verify the server TLS certificate (default: True)
            hooks: Optional custom hooks, run after the built-in hooks
        """
        self.url = url.rstrip("/")
        self.account_name = account_name
        merged = BUILTIN_HOOKS.merge(hooks)
        self._pre_hooks = merged.pre_hooks
        self._post_hooks = merged.post_hooks
        self._error_hooks = merged.error_hooks
        self._client = httpx.Client(
            base_url=self.url + "/",
            headers={
                "Authorization": authorization_header(api_key, account_name),
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=httpx.HTTPTransport(retries=max_retries, verify=verify),
        )

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        hooks: Hooks[PasswordSafeApiCallContext] | None = None,
    ) -> Self:
        return cls(
            url=settings.url,
            api_key=settings.api_key.get_secret_value(),
            account_name=settings.account_name,
            timeout=settings.api_timeout,
            max_retries=settings.api_max_retries,
            verify=settings.verify_ca,
            hooks=hooks,
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(
        self, method: str, verb: str, path: str, **kwargs: Any
    ) -> httpx.Response:
        """Send a request and return the response if the status is a success.

        Raises:
            BrokerUnavailableError: transport failure (connect, read, timeout)
            ApiError: status code other than 200, 201, 204
        """
        with invoke_with_hooks(
            PasswordSafeApiCallContext(method=method, verb=verb, id=self.url),
            pre_hooks=self._pre_hooks,
            post_hooks=self._post_hooks,
            error_hooks=self._error_hooks,
        ):
            try:
                response = self._client.request(verb, path, **kwargs)
            except httpx.HTTPError as e:
                raise BrokerUnavailableError(f"{verb} {path} failed: {e}") from e
            if response.status_code not in SUCCESS_STATUS_CODES:
                raise ApiError(response.status_code, response.text)
            return response

    @staticmethod
    def _json(response: httpx.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Failed to decode {what} response: {e}") from e

    def sign_in(self) -> Session:
        """Sign in and return the session identity.

        Raises:
            AuthenticationError: broker rejected the sign-in
            DecodeError: sign-in response is not a user object
        """
        try:
            response = self._request("auth.sign_in", "POST", SIGN_IN_PATH)
        except ApiError as e:
            raise AuthenticationError(e.status_code, e.body) from e
        data = self._json(response, "sign-in")
        try:
            return Session.model_validate(data)
        except ValidationError as e:
            raise DecodeError(f"Unexpected sign-in response: {e}") from e

    def sign_out(self) -> None:
        self._request("auth.sign_out", "POST", SIGN_OUT_PATH)

    def managed_account(self, system_name: str, account_name: str) -> ManagedAccountRef:
        """Resolve a managed account by system and account name.

        Raises:
            ManagedAccountNotFoundError: no such account (HTTP 404)
        """
        try:
            response = self._request(
                "managed_accounts.get",
                "GET",
                MANAGED_ACCOUNTS_PATH,
                params={"systemName": system_name, "accountName": account_name},
            )
        except ApiError as e:
            if e.status_code == httpx.codes.NOT_FOUND:
                raise ManagedAccountNotFoundError(e.status_code, e.body) from e
            raise
        data = self._json(response, "managed account")
        try:
            return ManagedAccountRef.model_validate(data)
        except ValidationError as e:
            raise DecodeError(f"Unexpected managed account response: {e}") from e

    def create_request(self, request: CredentialRequest) -> str:
        """Create a release request and return the broker assigned request id."""
        response = self._request(
            "requests.create", "POST", REQUESTS_PATH, json=request.to_payload()
        )
        request_id = response.text.strip()
        if not request_id:
            raise DecodeError("Empty request id in create request response")
        return request_id

    def credential(self, request_id: str) -> str:
        """Fetch the credential released under request_id, unquoted."""
        response = self._request(
            "credentials.get",
            "GET",
            CREDENTIALS_PATH.format(request_id=_segment(request_id)),
        )
        return decode_json_string(response.text)

    def checkin(self, request_id: str) -> None:
        """Check a request in, ending the lease before its duration elapses."""
        self._request(
            "requests.checkin",
            "PUT",
            CHECKIN_PATH.format(request_id=_segment(request_id)),
            json={},
        )

    def secrets_by_path(
        self, path: str, title: str, separator: str = "/"
    ) -> list[SecretsSafeSecret]:
        """List Secrets Safe secrets matching folder path and title."""
        response = self._request(
            "secrets.list",
            "GET",
            SECRETS_PATH,
            params={"title": title, "path": path, "separator": separator},
        )
        try:
            data = response.json()
        except ValueError as e:
            raise DecodeError(
                f"Failed to decode secrets response: {e}, "
                "ensure Password Safe version is 23.1 or greater."
            ) from e
        if not isinstance(data, list):
            raise DecodeError("Unexpected secrets response, expected a list")
        try:
            return [SecretsSafeSecret.model_validate(s) for s in data]
        except ValidationError as e:
            raise DecodeError(f"Unexpected secrets response: {e}") from e

    def secret_file(self, secret_id: str) -> str:
        """Download the content of a FILE secret."""
        response = self._request(
            "secrets.file.download",
            "GET",
            SECRET_FILE_PATH.format(secret_id=_segment(secret_id)),
        )
        return response.text

