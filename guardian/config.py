"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Secure defaults (no API keys in code)
"""

import os
from functools import lru_cache
from typing import Any, Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator
from rich.console import Console
from rich.table import Table

# Load environment variables from .env file
load_dotenv()


class AIGatewayConfig(BaseModel):
    """Chat-completions gateway used for per-member health insights."""

    url: str = Field(
        default="https://ai.gateway.lovable.dev/v1/chat/completions",
        description="OpenAI-compatible chat completions endpoint",
    )
    # Checked when a request is made, not at startup: the dashboard runs without AI.
    api_key: str | None = Field(default=None, description="Gateway bearer token")
    model: str = Field(default="google/gemini-2.5-flash", description="Model for insights")
    timeout_seconds: float = Field(default=30.0, gt=0.0, description="Request timeout")

    @field_validator("api_key")
    def blank_key_is_missing(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class AssistantConfig(BaseModel):
    """Caregiver chat assistant configuration."""

    model_name: str = Field(
        default="openai:gpt-4o-mini", description="pydantic-ai model string for the assistant"
    )
    temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class SimulatorConfig(BaseModel):
    """Vitals simulation parameters."""

    interval_seconds: float = Field(default=5.0, gt=0.0, description="Seconds between ticks")
    heart_rate_min: int = Field(default=60, gt=0)
    heart_rate_max: int = Field(default=100, gt=0)
    heart_rate_max_drift: float = Field(
        default=2.0, ge=0.0, description="Max absolute heart rate change per tick"
    )
    step_increment_bound: int = Field(
        default=15, gt=0, description="Exclusive upper bound of steps added per tick"
    )
    alert_probability: float = Field(default=0.05, ge=0.0, le=1.0)
    alert_heart_rate_threshold: int = Field(
        default=95, description="Alerts are only possible strictly above this heart rate"
    )

    @model_validator(mode="after")
    def bounds_are_ordered(self) -> "SimulatorConfig":
        if self.heart_rate_min > self.heart_rate_max:
            raise ValueError("heart_rate_min must not exceed heart_rate_max")
        return self


class DevicePairingConfig(BaseModel):
    """Simulated wearable pairing."""

    pairing_delay_seconds: float = Field(default=2.5, ge=0.0)
    device_prefix: str = Field(default="FitBand", min_length=1)
    device_label: str = Field(default="FitBand 5")


class APIConfig(BaseModel):
    """API server configuration."""

    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=8000, gt=0, lt=65536, description="API server port")
    reload: bool = Field(default=False, description="Enable auto-reload for development")

    allowed_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Allowed origins for CORS"
    )
    owner_user_id: str = Field(
        default="caregiver", min_length=1, description="User that owns created members"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    ai_gateway: AIGatewayConfig = Field(default_factory=AIGatewayConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    simulator: SimulatorConfig = Field(default_factory=SimulatorConfig)
    devices: DevicePairingConfig = Field(default_factory=DevicePairingConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    ai_gateway_config = AIGatewayConfig(
        url=os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions"),
        api_key=os.getenv("AI_GATEWAY_API_KEY"),
        model=os.getenv("INSIGHTS_MODEL", "google/gemini-2.5-flash"),
        timeout_seconds=float(os.getenv("AI_GATEWAY_TIMEOUT_SECONDS", "30.0")),
    )

    assistant_config = AssistantConfig(
        model_name=os.getenv("ASSISTANT_MODEL", "openai:gpt-4o-mini"),
    )

    simulator_config = SimulatorConfig(
        interval_seconds=float(os.getenv("SIMULATOR_INTERVAL_SECONDS", "5.0")),
        alert_probability=float(os.getenv("SIMULATOR_ALERT_PROBABILITY", "0.05")),
    )

    devices_config = DevicePairingConfig(
        pairing_delay_seconds=float(os.getenv("PAIRING_DELAY_SECONDS", "2.5")),
    )

    api_config = APIConfig(
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=_parse_bool(os.getenv("API_RELOAD"), debug),
        allowed_origins=os.getenv("API_ALLOWED_ORIGINS", "*").split(","),
        owner_user_id=os.getenv("OWNER_USER_ID", "caregiver"),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        ai_gateway=ai_gateway_config,
        assistant=assistant_config,
        simulator=simulator_config,
        devices=devices_config,
        api=api_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    console = Console()
    try:
        config = get_config()
        console.print(f"[green]Configuration loaded for {config.environment} environment")

        if config.ai_gateway.api_key:
            console.print("[green]AI gateway API key configured")
        else:
            console.print("[yellow]AI gateway API key missing, insights will be unavailable")

    except Exception as e:
        console.print(f"[red]Configuration validation failed: {e}")
        raise


def get_model_config(task: Literal["insights", "assistant"]) -> dict[str, Any]:
    """Get model configuration based on task."""
    config = get_config()

    if task == "insights":
        return {
            "model_name": config.ai_gateway.model,
            "timeout_seconds": config.ai_gateway.timeout_seconds,
        }
    elif task == "assistant":
        return {
            "model_name": config.assistant.model_name,
            "temperature": config.assistant.temperature,
            "timeout_seconds": config.assistant.timeout_seconds,
        }
    else:
        raise ValueError(f"Unknown task: {task}")


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    table = Table(title="Health Guardian configuration")
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("Environment", config.environment)
    table.add_row("Debug Mode", str(config.debug))
    table.add_row("Log Level", config.logging.level)
    table.add_row("Insights Model", config.ai_gateway.model)
    table.add_row("Assistant Model", config.assistant.model_name)
    table.add_row("Simulator Interval", f"{config.simulator.interval_seconds}s")
    table.add_row("Alert Probability", f"{config.simulator.alert_probability:.0%}")
    table.add_row("Alert Threshold", f"> {config.simulator.alert_heart_rate_threshold} BPM")
    table.add_row("API", f"{config.api.host}:{config.api.port}")

    Console().print(table)


if __name__ == "__main__":
    validate_config()
    print_config_summary()
