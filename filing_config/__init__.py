"""
filing_config -- single public entrypoint for scheduler configuration.

Responsibility:
    Provides the ONLY way to obtain scheduler settings at runtime through
    ``get_active_settings()``.  Services never read configuration files or
    environment variables directly.

Failure modes:
    - ``FileNotFoundError`` -- the configured settings file does not exist.
    - ``ValueError`` -- schema validation failures.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from filing_config.loader import load_settings
from filing_config.schema import SchedulerSettings

_logger = logging.getLogger("filing_kernel.config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_ENV_VAR = "FILING_SCHEDULER_CONFIG"


def get_active_settings(path: Path | None = None) -> SchedulerSettings:
    """Load the active scheduler settings.

    Resolution order: explicit ``path``, the ``FILING_SCHEDULER_CONFIG``
    environment variable, then the bundled ``sets/default.yaml``.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env_path) if env_path else _DEFAULT_SETTINGS_FILE

    settings = load_settings(path)

    _logger.info(
        "FILING_CONFIG_TRACE",
        extra={
            "config_path": str(path),
            "urgent_priority_threshold": settings.urgent_priority_threshold,
            "default_max_batch_size": settings.default_max_batch_size,
            "max_attempts": settings.max_attempts,
            "portal_limit_count": len(settings.portal_limits),
        },
    )
    return settings


__all__ = ["SchedulerSettings", "get_active_settings", "CONFIG_ENV_VAR"]
