"""
Tests for configuration management in `guardian/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level coercion to the expected Literal
- API reload boolean parsing
- Allowed origins parsing
- Blank gateway keys treated as missing
- get_model_config mapping
- get_config cache behavior
- AppConfig and SimulatorConfig validation
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from guardian.config import (
    AIGatewayConfig,
    AppConfig,
    SimulatorConfig,
    get_config,
    get_model_config,
    load_config_from_env,
)


@pytest.fixture(autouse=True)
def clear_config_cache() -> Iterator[None]:
    """Ensure get_config cache is cleared before and after each test."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.delenv("API_RELOAD", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.api.reload is True  # defaults to debug
    assert config.logging.format == "console"
    assert config.logging.level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def test_production_uses_json_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")
    monkeypatch.delenv("API_RELOAD", raising=False)

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.api.reload is False
    assert config.logging.format == "json"


def test_api_reload_boolean_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    # Explicit false should override debug default
    monkeypatch.setenv("API_RELOAD", "false")
    config = load_config_from_env()
    assert config.api.reload is False

    monkeypatch.setenv("API_RELOAD", "1")
    config = load_config_from_env()
    assert config.api.reload is True


def test_allowed_origins_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("API_ALLOWED_ORIGINS", "http://a.example,http://b.example")

    config = load_config_from_env()

    assert config.api.allowed_origins == ["http://a.example", "http://b.example"]


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    config = load_config_from_env()
    assert config.logging.level == "INFO"

    monkeypatch.setenv("LOG_LEVEL", "error")
    config = load_config_from_env()
    assert config.logging.level == "ERROR"


def test_gateway_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AI_GATEWAY_API_KEY", "gw-key")
    monkeypatch.setenv("AI_GATEWAY_URL", "https://gateway.test/v1/chat/completions")
    monkeypatch.setenv("INSIGHTS_MODEL", "some/model")
    monkeypatch.setenv("SIMULATOR_INTERVAL_SECONDS", "1.5")

    config = load_config_from_env()

    assert config.ai_gateway.api_key == "gw-key"
    assert config.ai_gateway.url == "https://gateway.test/v1/chat/completions"
    assert config.ai_gateway.model == "some/model"
    assert config.simulator.interval_seconds == 1.5


def test_missing_gateway_key_does_not_fail_startup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("AI_GATEWAY_API_KEY", raising=False)

    config = load_config_from_env()

    assert config.ai_gateway.api_key is None


def test_blank_gateway_key_is_missing() -> None:
    assert AIGatewayConfig(api_key="   ").api_key is None


def test_simulator_defaults() -> None:
    config = SimulatorConfig()

    assert config.interval_seconds == 5.0
    assert (config.heart_rate_min, config.heart_rate_max) == (60, 100)
    assert config.alert_probability == 0.05
    assert config.alert_heart_rate_threshold == 95


def test_simulator_bounds_must_be_ordered() -> None:
    with pytest.raises(ValueError, match="heart_rate_min"):
        SimulatorConfig(heart_rate_min=110, heart_rate_max=100)


def test_get_model_config_maps_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("INSIGHTS_MODEL", "google/gemini-2.5-flash")
    monkeypatch.setenv("ASSISTANT_MODEL", "openai:gpt-4o")

    cfg = load_config_from_env()

    insights_cfg = get_model_config("insights")
    assistant_cfg = get_model_config("assistant")

    assert insights_cfg["model_name"] == cfg.ai_gateway.model
    assert insights_cfg["timeout_seconds"] == cfg.ai_gateway.timeout_seconds
    assert assistant_cfg["model_name"] == cfg.assistant.model_name
    assert assistant_cfg["temperature"] == cfg.assistant.temperature


def test_get_model_config_unknown_task() -> None:
    with pytest.raises(ValueError, match="Unknown task"):
        get_model_config("forecasting")  # type: ignore[arg-type]


def test_get_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(environment="production", debug=True)
