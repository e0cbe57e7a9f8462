"""Server configuration via environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator

VALID_PROVIDERS = {"openrouter", "gemini"}

DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_CODEGEN_MODEL = "anthropic/claude-opus-4.6"
DEFAULT_GEMINI_MODEL = "gemini-3.1-pro-preview"


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Derive tracing_enabled from env vars.

    - ``CODEGEN_TRACING_ENABLED=false`` → always disabled (explicit opt-out).
    - Otherwise enabled when ``MLFLOW_TRACKING_URI`` is non-empty.
    """
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment."""

    provider: str = Field(default="openrouter")
    openrouter_api_key: str = Field(default="")
    openrouter_base_url: str = Field(default=DEFAULT_OPENROUTER_BASE_URL)
    codegen_model: str = Field(default=DEFAULT_CODEGEN_MODEL)
    gemini_api_key: str = Field(default="")
    gemini_model: str = Field(default=DEFAULT_GEMINI_MODEL)
    temperature: float = Field(default=0.3)
    max_tokens: int = Field(default=12000)
    max_attempts: int = Field(default=3)
    http_timeout: float = Field(default=0.0, description="Seconds; 0 leaves the timeout to the network stack")
    http_referer: str = Field(default="https://academy.pauseplayrepeat.com")
    app_title: str = Field(default="Pause Play Repeat Video Generator")
    retry_max_attempts: int = Field(default=3)
    retry_base_delay: float = Field(default=1.0)
    retry_max_delay: float = Field(default=60.0)
    job_db_path: str = Field(default="")
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="video-codegen-mcp")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        provider = value.strip().lower()
        if provider not in VALID_PROVIDERS:
            allowed = ", ".join(sorted(VALID_PROVIDERS))
            raise ValueError(f"Invalid codegen provider '{value}'. Allowed: {allowed}")
        return provider

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, value: float) -> float:
        if not 0.0 <= value <= 2.0:
            raise ValueError("temperature must be between 0 and 2")
        return value

    @field_validator("max_tokens", "max_attempts", "retry_max_attempts")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("retry_base_delay", "retry_max_delay")
    @classmethod
    def validate_retry_delays(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Retry delay must be > 0")
        return value

    @field_validator("http_timeout")
    @classmethod
    def validate_http_timeout(cls, value: float) -> float:
        if value < 0:
            raise ValueError("http_timeout must be >= 0")
        return value

    @property
    def active_model(self) -> str:
        """Model identifier for the configured provider."""
        return self.gemini_model if self.provider == "gemini" else self.codegen_model

    @property
    def active_api_key(self) -> str:
        """API credential for the configured provider (may be empty)."""
        return self.gemini_api_key if self.provider == "gemini" else self.openrouter_api_key

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            provider=os.getenv("CODEGEN_PROVIDER", "openrouter"),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY", ""),
            openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", DEFAULT_OPENROUTER_BASE_URL).rstrip("/"),
            codegen_model=os.getenv("CODEGEN_MODEL", DEFAULT_CODEGEN_MODEL),
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            temperature=float(os.getenv("CODEGEN_TEMPERATURE", "0.3")),
            max_tokens=int(os.getenv("CODEGEN_MAX_TOKENS", "12000")),
            max_attempts=int(os.getenv("CODEGEN_MAX_ATTEMPTS", "3")),
            http_timeout=float(os.getenv("CODEGEN_HTTP_TIMEOUT", "0")),
            http_referer=os.getenv("CODEGEN_HTTP_REFERER", "https://academy.pauseplayrepeat.com"),
            app_title=os.getenv("CODEGEN_APP_TITLE", "Pause Play Repeat Video Generator"),
            retry_max_attempts=int(os.getenv("CODEGEN_RETRY_MAX_ATTEMPTS", "3")),
            retry_base_delay=float(os.getenv("CODEGEN_RETRY_BASE_DELAY", "1.0")),
            retry_max_delay=float(os.getenv("CODEGEN_RETRY_MAX_DELAY", "60.0")),
            job_db_path=os.getenv("CODEGEN_JOB_DB", ""),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("CODEGEN_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "video-codegen-mcp"),
        )


# Singleton, created on first access.
_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/video-codegen-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        import logging

        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logger = logging.getLogger(__name__)
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the config singleton so the next access re-reads the environment."""
    global _config
    _config = None
