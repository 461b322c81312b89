from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .loader import DEFAULT_EXTENSIONS

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class LintSettings:
    """Command-line defaults for a lint run."""

    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    log_level: str = "WARNING"
    output_format: str = "text"
    cross_strength: bool = False


@dataclass(slots=True)
class TracingSettings:
    """OpenTelemetry export configuration."""

    enabled: bool = False
    endpoint: str | None = None
    service_name: str = "rule-lint"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _env_extensions(name: str) -> tuple[str, ...]:
    value = os.getenv(name)
    if not value:
        return DEFAULT_EXTENSIONS
    parts = [part.strip().lower() for part in value.split(",") if part.strip()]
    return tuple(part if part.startswith(".") else f".{part}" for part in parts) or DEFAULT_EXTENSIONS


def load_settings() -> tuple[LintSettings, TracingSettings]:
    """Load environment-backed settings and return typed config objects.

    Returns:
        Tuple containing lint defaults and tracing settings.
    """
    load_dotenv()
    endpoint = os.getenv("RULE_LINT_OTLP_ENDPOINT") or None
    return (
        LintSettings(
            extensions=_env_extensions("RULE_LINT_EXTENSIONS"),
            log_level=os.getenv("RULE_LINT_LOG_LEVEL", "WARNING").upper(),
            output_format=os.getenv("RULE_LINT_FORMAT", "text").lower(),
            cross_strength=_env_flag("RULE_LINT_CROSS_STRENGTH", False),
        ),
        TracingSettings(
            enabled=_env_flag("RULE_LINT_TRACE", endpoint is not None),
            endpoint=endpoint,
            service_name=os.getenv("RULE_LINT_SERVICE_NAME", "rule-lint"),
        ),
    )
