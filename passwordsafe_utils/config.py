"""Configuration management using Pydantic Settings.

Environment variables use the PS_ prefix and "__" for nested values:

    PS_URL=https://ps.example.com/BeyondTrust/api/public/v3
    PS_API_KEY=...
    PS_ACCOUNT_NAME=svc-terraform
    PS_LEASE__REASON="terraform apply"
    PS_LEASE__DURATION_MINUTES=5
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from passwordsafe_utils.lease import LeasePolicy
from passwordsafe_utils.passwordsafe_api.client import TIMEOUT


class Settings(BaseSettings):
    """Settings from environment variables and .env file."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PS_",
        env_nested_delimiter="__",
    )

    # Password Safe API
    url: str = Field(
        ...,
        description="Password Safe API base URL, e.g. https://host/BeyondTrust/api/public/v3",
    )
    api_key: SecretStr = Field(..., description="Password Safe API registration key")
    account_name: str = Field(..., description="Password Safe user the API key runs as")
    verify_ca: bool = Field(default=True, description="Verify the server certificate")
    api_timeout: int = Field(
        default=TIMEOUT, description="Password Safe API timeout in seconds"
    )
    api_max_retries: int = Field(
        default=3, description="Connection retries of the HTTP transport"
    )

    # Credential leases
    lease: LeasePolicy = Field(
        ...,
        description="Release request policy, PS_LEASE__REASON is required",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format_json: bool = Field(
        default=True,
        description="Use JSON logging format (False for human-readable logs in development)",
    )
    log_exclude_loggers: str = Field(
        default="httpx,httpcore",
        description="Comma-separated list of logger names to exclude from DEBUG logging",
    )
