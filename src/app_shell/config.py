import logging
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.rules.models import Rules

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Startup configuration is unusable."""


def validate_ops_rules(rules: Rules, data_dir: Path) -> None:
    """
    Validate operational requirements before startup.

    Raises:
        ConfigurationError: required env vars missing, unknown reference
            timezone, or the data directory cannot be created
    """
    missing = [name for name in rules.ops.required_env if name not in os.environ]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    try:
        ZoneInfo(rules.usage.reference_timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(
            f"Unknown reference timezone: {rules.usage.reference_timezone}"
        ) from e

    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Data directory not writable: {data_dir}") from e

    logger.info("Configuration validated (rules %s)", rules.project.rules_version)
