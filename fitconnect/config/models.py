"""
Pydantic-based configuration models for FitConnect.

Every section is a BaseSettings model with its own environment prefix, so a
deployment configures the server, the messaging rules and the client pollers
independently through environment variables or a .env file.
"""

import json
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from ..models.requests import MAX_MESSAGE_LENGTH
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a value from the environment as a JSON list or CSV."""
    if candidate is None:
        return []
    if isinstance(candidate, list | tuple):
        return [str(item).strip() for item in candidate if str(item).strip()]
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=3000, description="Server port")
    users_file: str | None = Field(
        default=None, description="JSON file of users loaded into the user directory at startup"
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1024 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1024-65535")
            raise ValueError("Port must be between 1024 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class SecurityConfig(BaseSettings):
    """Bearer credential verification settings."""

    jwt_secret: str = Field(..., description="Secret used to verify bearer tokens (required)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    token_audience: str | None = Field(default=None, description="Expected JWT audience, if any")

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Reject trivially short secrets."""
        if len(v) < 16:
            logger.error("JWT secret validation failed - too short", secret_length=len(v), minimum_length=16)
            raise ValueError("JWT secret must be at least 16 characters")
        return v

    model_config = {"env_prefix": "FITCONNECT_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="100MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "e2e_test", "production"]
        if v not in valid_environments:
            logger.error("Invalid logging environment", environment=v, valid_environments=valid_environments)
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict structure expected by setup_enhanced_logging()."""
        return {
            "environment": self.environment,
            "level": self.level,
            "log_base": self.log_base,
            "rotation": {
                "max_size": self.rotation_max_size,
                "backup_count": self.rotation_backup_count,
            },
            "disable_logging": self.disable_logging,
        }


class MessagingConfig(BaseSettings):
    """Message store and chat rules."""

    max_message_length: int = Field(
        default=MAX_MESSAGE_LENGTH,
        le=MAX_MESSAGE_LENGTH,
        description="Maximum message body length; may only be lowered",
    )
    default_page_limit: int = Field(default=50, description="Messages returned per conversation page")
    max_page_limit: int = Field(default=100, description="Largest page size a caller may request")
    default_alert_message: str = Field(
        default="Faltou ao treino agendado. Por favor, entre em contacto para discutirmos.",
        description="Body used for missed-workout alerts sent without a message",
    )
    default_alert_reason: str = Field(
        default="Faltou ao treino agendado",
        description="Reason pushed to the client when the alert carries no message",
    )
    toast_preview_length: int = Field(default=50, description="Characters of a message shown in a toast")

    @field_validator("max_message_length", "default_page_limit", "max_page_limit", "toast_preview_length")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Limits must be positive."""
        if v < 1:
            raise ValueError("Messaging limits must be at least 1")
        return v

    model_config = {"env_prefix": "MESSAGING_", "case_sensitive": False, "extra": "ignore"}


class ClientConfig(BaseSettings):
    """Settings for the client-side connection manager and pollers."""

    api_base_url: str = Field(default="http://localhost:3000/api", description="REST API base URL")
    socket_url: str = Field(default="ws://localhost:3000/ws", description="Push channel URL")
    poll_interval_seconds: float = Field(default=3.0, description="Inbox poll interval")
    request_timeout_seconds: float | None = Field(
        default=None, description="REST request timeout; None keeps the transport default"
    )

    @field_validator("poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        """Poll interval must be positive."""
        if v <= 0:
            raise ValueError("Poll interval must be greater than 0")
        return v

    model_config = {"env_prefix": "CLIENT_", "case_sensitive": False, "extra": "ignore"}


class CORSConfig(BaseSettings):
    """Cross-origin resource sharing configuration."""

    allow_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins permitted to access the API",
    )
    allow_credentials: bool = Field(default=True, description="Whether credentialed requests are accepted")
    allow_methods: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        description="HTTP methods permitted by CORS responses",
    )
    allow_headers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["Content-Type", "Authorization", "Accept"],
        description="Request headers permitted by CORS responses",
    )
    max_age: int = Field(default=600, description="Seconds browsers may cache preflight responses")

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> list[str]:
        """Accept JSON lists or comma-separated strings."""
        return _parse_env_list(v)

    model_config = {"env_prefix": "CORS_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via the get_config() function.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)  # type: ignore[arg-type]
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    messaging: MessagingConfig = Field(default_factory=MessagingConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict format consumed by setup_enhanced_logging()."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "logging": self.logging.to_legacy_dict(),
            "messaging": self.messaging.model_dump(),
        }
