"""
Configuration management using Pydantic Settings
Loads and validates environment variables (and an optional .env file)
"""

from typing import Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when required settings are missing or invalid"""
    pass


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Built once at startup and shared read-only by every request.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Netlify API Configuration
    netlify_token: str = Field(
        ...,
        description="Netlify personal access token"
    )
    netlify_api_url: str = Field(
        default="https://api.netlify.com/api/v1",
        description="Netlify API base URL"
    )
    netlify_request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for each Netlify API call"
    )
    netlify_txt_record_value: str = Field(
        default="",
        description="Default TXT record value sent when promoting a primary domain"
    )
    base_domain: str = Field(
        default="sites.kodestech.com.br",
        description="Base domain used to build per-site subdomains"
    )

    # AWS S3 Configuration
    aws_access_key_id: str = Field(
        ...,
        description="AWS Access Key ID for the staging bucket"
    )
    aws_secret_access_key: str = Field(
        ...,
        description="AWS Secret Access Key for the staging bucket"
    )
    aws_region: str = Field(
        default="",
        description="AWS region (not required when S3_ENDPOINT is set)"
    )
    s3_bucket_name: str = Field(
        ...,
        description="Bucket holding the site files"
    )
    s3_endpoint: str = Field(
        default="",
        description="Custom S3 endpoint (MinIO or other S3-compatible storage)"
    )

    # API Server Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP API binds to"
    )
    api_port: int = Field(
        default=8080,
        description="Port the HTTP API listens on"
    )

    # Deploy polling
    deploy_poll_interval: float = Field(
        default=2.0,
        description="Seconds between deploy status checks"
    )
    deploy_wait_timeout: float = Field(
        default=600.0,
        description="Max seconds to wait for a deploy to finish (0 = no limit)"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator("netlify_token", "aws_access_key_id", "aws_secret_access_key", "s3_bucket_name")
    @classmethod
    def validate_required(cls, v: str, info) -> str:
        """Reject empty values for required settings"""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name.upper()} must be set")
        return v.strip()

    @field_validator("base_domain")
    @classmethod
    def validate_base_domain(cls, v: str) -> str:
        return v.strip().lower().strip(".")

    @model_validator(mode="after")
    def validate_region(self) -> "Settings":
        """AWS_REGION is only optional when a custom S3 endpoint is used"""
        if not self.s3_endpoint and not self.aws_region:
            raise ValueError("AWS_REGION must be set when S3_ENDPOINT is not configured")
        return self

    @property
    def netlify_auth_header(self) -> dict:
        """
        Returns the authorization header for Netlify API requests
        """
        return {"Authorization": f"Bearer {self.netlify_token}"}

    @property
    def deploy_timeout_or_none(self) -> Optional[float]:
        """Deploy wait bound, None when unbounded"""
        return self.deploy_wait_timeout if self.deploy_wait_timeout > 0 else None

    def uses_custom_s3_endpoint(self) -> bool:
        """Check if an S3-compatible endpoint (e.g. MinIO) is configured"""
        return bool(self.s3_endpoint)


def load_settings(**overrides) -> Settings:
    """
    Build and validate the application settings.

    Called once at process startup; the resulting object is passed to every
    component that needs it.

    Args:
        **overrides: Explicit values that take precedence over the environment

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If required environment variables are missing or invalid
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e
