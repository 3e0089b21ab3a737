"""
Configuration management for the DLP remediation service.

Uses Pydantic Settings for type-safe configuration with environment variable support.
Settings are loaded once per process and handed to components explicitly.
"""
from dotenv import load_dotenv
load_dotenv()
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dlp_remediator.models import RemediationAction, SeverityThreshold


class RemediationSettings(BaseSettings):
    """Routing policy and quarantine configuration."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    # Finding type -> AUTO/MANUAL, e.g. {"SensitiveData:S3Object/Credentials": "AUTO"}
    auto_remediate_config: dict[str, RemediationAction] = Field(
        default_factory=dict, alias="AUTO_REMEDIATE_CONFIG"
    )
    min_severity_level: SeverityThreshold = Field(
        default=SeverityThreshold.MEDIUM, alias="MIN_SEVERITY_LEVEL"
    )

    quarantine_bucket: str = Field(default="", alias="QUARANTINE_BUCKET")

    # Execution stage: "lambda" invokes the remediator function, "background"
    # runs it as a task inside the API process
    remediation_transport: Literal["lambda", "background"] = Field(
        default="lambda", alias="REMEDIATION_TRANSPORT"
    )
    remediator_function_name: str = Field(
        default="macie-remediator", alias="REMEDIATOR_FUNCTION_NAME"
    )

    # Callback replay window (seconds)
    signature_tolerance_seconds: int = Field(
        default=300, alias="SIGNATURE_TOLERANCE_SECONDS"
    )

    @field_validator("min_severity_level", mode="before")
    @classmethod
    def normalize_severity(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("auto_remediate_config", mode="before")
    @classmethod
    def normalize_policy(cls, v: object) -> object:
        # Only the exact tag "AUTO" enables unattended quarantine; anything else asks a human
        if isinstance(v, dict):
            return {
                k: RemediationAction.AUTO if a == RemediationAction.AUTO.value else RemediationAction.MANUAL
                for k, a in v.items()
            }
        return v


class SlackSettings(BaseSettings):
    """Chat channel configuration."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    webhook_url: str | None = Field(default=None, alias="SLACK_WEBHOOK_URL")
    channel: str = Field(default="#macie-findings", alias="SLACK_CHANNEL")
    signing_secret: SecretStr = Field(default=SecretStr(""), alias="SLACK_SIGNING_SECRET")
    username: str = Field(default="MacieBot", alias="SLACK_USERNAME")
    timeout: float = Field(default=10.0, alias="SLACK_TIMEOUT")


class AWSSettings(BaseSettings):
    """AWS client configuration."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    region: str | None = Field(default=None, alias="AWS_REGION")
    # Local stacks (localstack, moto server)
    endpoint_url: str | None = Field(default=None, alias="AWS_ENDPOINT_URL")


class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    host: str = Field(default="0.0.0.0", alias="API_HOST")
    port: int = Field(default=8000, alias="API_PORT")
    workers: int = Field(default=1, alias="API_WORKERS")


class Settings(BaseSettings):
    """Main settings class aggregating all configurations."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = Field(
        default="development", alias="APP_ENV"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    # Sub-configurations
    remediation: RemediationSettings = Field(default_factory=RemediationSettings)
    slack: SlackSettings = Field(default_factory=SlackSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)
    api: APISettings = Field(default_factory=APISettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.app_env == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
