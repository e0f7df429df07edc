"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SAFETY_MESSAGE = (
    "⚠️ I can't answer that one. The request was blocked by the AI model's "
    "content safety filter. Please rephrase your question and try again."
)

DEFAULT_UNAVAILABLE_MESSAGE = (
    "😥 All AI models are busy or unavailable right now. Please try again in a few minutes."
)


class ReactionsConfig(BaseModel):
    """Lark emoji types used for each workflow status."""

    thinking: str = "THINKING"
    done: str = "DONE"
    error: str = "ERROR"


class LarkConfig(BaseModel):
    """Lark-specific configuration."""

    base_url: str = "https://open.larksuite.com/open-apis"
    verification_token: str | None = None
    reactions: ReactionsConfig = ReactionsConfig()
    timeout: float = Field(30.0, gt=0, le=600)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate and normalize the Lark API base URL."""
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"Invalid Lark base URL: {v}")
        return v.rstrip("/")


class GeminiConfig(BaseModel):
    """Gemini-specific configuration."""

    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    tiers: list[str] = ["gemma-3-27b-it"]
    temperature: float = Field(0.8, ge=0.0, le=2.0)
    max_output_tokens: int = Field(2048, ge=1, le=65536)
    timeout: float = Field(120.0, gt=0, le=600)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate and normalize the Gemini API base URL."""
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"Invalid Gemini base URL: {v}")
        return v.rstrip("/")

    @field_validator("tiers")
    @classmethod
    def validate_tiers(cls, v: list[str]) -> list[str]:
        """Require at least one model and reject blank or duplicate names."""
        if not v:
            raise ValueError("At least one model tier must be configured")
        cleaned = [tier.strip() for tier in v]
        if any(not tier for tier in cleaned):
            raise ValueError("Model tier names must not be empty")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("Model tiers must be unique")
        return cleaned


class PromptConfig(BaseModel):
    """Context preamble and fixed reply texts."""

    timezone: str = "UTC"
    bold_marker: str = "**"
    bullet_marker: str = "•"
    safety_message: str = DEFAULT_SAFETY_MESSAGE
    unavailable_message: str = DEFAULT_UNAVAILABLE_MESSAGE

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate the IANA time zone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v


class CredentialsConfig(BaseModel):
    """Names of the environment variables holding the secrets."""

    app_id_env: str = "LARK_APP_ID"
    app_secret_env: str = "LARK_APP_SECRET"
    api_key_env: str = "GEMINI_API_KEY"


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(8000, ge=1, le=65535)
    webhook_path: str = "/"

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        """Ensure the webhook path is absolute."""
        if not v.startswith("/"):
            raise ValueError("Webhook path must start with /")
        return v


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("/var/log/lark-ai-bot/bot.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()


class RuntimeConfig(BaseModel):
    """Runtime configuration."""

    shutdown_timeout: float = Field(
        30.0, ge=0, le=600, description="Seconds to wait for in-flight workflows on shutdown"
    )
    notify_on_failure: bool = Field(
        False, description="Attempt an ERROR reaction when a workflow fails unexpectedly"
    )


class BotConfig(BaseSettings):
    """Root configuration for Lark AI Bot."""

    lark: LarkConfig = LarkConfig()
    gemini: GeminiConfig = GeminiConfig()
    prompt: PromptConfig = PromptConfig()
    credentials: CredentialsConfig = CredentialsConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()
    runtime: RuntimeConfig = RuntimeConfig()

    model_config = SettingsConfigDict(
        env_prefix="LARK_BOT_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )
