"""Configuration parsing and validation for the developer KPI engine."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlparse

from .errors import AuthenticationError, ConfigurationError, InvalidConfigError
from .models import BugPenalties, ScoringConfig

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "DEVKPI_CONFIG"
TRACKER_TOKEN_ENV = "TRACKER_TOKEN"

_WEIGHT_SUM_TOLERANCE = 0.01


@dataclass(frozen=True)
class TrackerSettings:
    """Validated connection settings for the ticket-tracker API."""

    base_url: str
    token: str


def validate_scoring_config(config: ScoringConfig) -> ScoringConfig:
    """Validate scoring weights and bug penalties.

    Args:
        config: Scoring configuration to check.

    Returns:
        The same ``config`` when it is valid.

    Raises:
        InvalidConfigError: If a weight is outside ``[0, 1]``, the weights do not
            sum to ``1.0`` (within ``0.01``), or a penalty is negative.
    """
    total_weight = config.delivery_weight + config.quality_weight
    if abs(total_weight - 1.0) > _WEIGHT_SUM_TOLERANCE:
        raise InvalidConfigError(f"Weights must sum to 1.0 (current: {total_weight:.2f})")

    if not 0.0 <= config.delivery_weight <= 1.0:
        raise InvalidConfigError("Delivery weight must be between 0 and 1")
    if not 0.0 <= config.quality_weight <= 1.0:
        raise InvalidConfigError("Quality weight must be between 0 and 1")

    penalties = config.bug_penalties
    if min(penalties.critical, penalties.high, penalties.medium, penalties.low) < 0.0:
        raise InvalidConfigError("Bug penalties must be non-negative")

    return config


def scoring_config_from_dict(payload: Mapping[str, Any]) -> ScoringConfig:
    """Build a validated ``ScoringConfig`` from its camelCase JSON shape.

    Missing keys keep their defaults.
    """
    defaults = ScoringConfig()
    raw_penalties = payload.get("bugPenalties") or {}

    try:
        config = ScoringConfig(
            delivery_weight=float(payload.get("deliveryWeight", defaults.delivery_weight)),
            quality_weight=float(payload.get("qualityWeight", defaults.quality_weight)),
            bug_penalties=BugPenalties(
                critical=float(raw_penalties.get("critical", defaults.bug_penalties.critical)),
                high=float(raw_penalties.get("high", defaults.bug_penalties.high)),
                medium=float(raw_penalties.get("medium", defaults.bug_penalties.medium)),
                low=float(raw_penalties.get("low", defaults.bug_penalties.low)),
            ),
        )
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidConfigError(f"Scoring configuration contains a non-numeric value: {exc}") from exc

    return validate_scoring_config(config)


def scoring_config_to_dict(config: ScoringConfig) -> dict:
    return {
        "deliveryWeight": config.delivery_weight,
        "qualityWeight": config.quality_weight,
        "bugPenalties": {
            "critical": config.bug_penalties.critical,
            "high": config.bug_penalties.high,
            "medium": config.bug_penalties.medium,
            "low": config.bug_penalties.low,
        },
    }


def load_scoring_config(path: Optional[Union[str, Path]] = None) -> ScoringConfig:
    """Load the scoring configuration.

    Resolution order: the explicit ``path``, then the ``DEVKPI_CONFIG``
    environment variable, then built-in defaults. A configured path that does
    not exist also falls back to defaults.

    Raises:
        ConfigurationError: If the file cannot be read or is not valid JSON.
        InvalidConfigError: If the loaded values fail validation.
    """
    if path is None:
        env_path = os.getenv(CONFIG_PATH_ENV, "").strip()
        path = env_path or None

    if path is None:
        return ScoringConfig()

    config_path = Path(path)
    if not config_path.exists():
        logger.info("Scoring config file not found; using defaults", extra={"path": str(config_path)})
        return ScoringConfig()

    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Failed to read config file '{config_path}': {exc}") from exc
    except ValueError as exc:
        raise ConfigurationError(f"Failed to parse config file '{config_path}': {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Config file '{config_path}' must contain a JSON object.")

    return scoring_config_from_dict(payload)


def save_scoring_config(config: ScoringConfig, path: Union[str, Path]) -> None:
    """Validate and write ``config`` as pretty-printed JSON, creating parent dirs."""
    validate_scoring_config(config)
    config_path = Path(path)

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(scoring_config_to_dict(config), indent=2), encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to write config file '{config_path}': {exc}") from exc


def load_tracker_settings(base_url: str) -> TrackerSettings:
    """Build and validate tracker connection settings.

    Args:
        base_url: Root URL of the tracker REST API.

    Returns:
        A validated ``TrackerSettings`` instance.

    Raises:
        ConfigurationError: If ``base_url`` is not an http(s) URL.
        AuthenticationError: If ``TRACKER_TOKEN`` is not configured.
    """
    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"Invalid tracker URL '{base_url}': expected an http(s) URL.")

    token: str = os.getenv(TRACKER_TOKEN_ENV, "").strip()
    if not token:
        raise AuthenticationError(
            "Missing required tracker API token. "
            f"Set the '{TRACKER_TOKEN_ENV}' environment variable before using --tracker-url."
        )

    return TrackerSettings(base_url=base_url.rstrip("/"), token=token)
