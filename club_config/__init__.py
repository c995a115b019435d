"""
club_config -- single public entrypoint for organisation configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration.
    It reads the YAML file named by ``CLUB_CONFIG_PATH`` (falling back to
    the packaged ``defaults.yaml``) and lets ``CLUB_DATABASE_URL`` override
    the store URL.

Architecture position:
    Configuration.  Sits beside ``club_kernel``; the kernel never imports
    from here.  ``club_modules`` services receive a ``ClubConfig`` by
    injection and fall back to ``get_active_config()``.

Failure modes:
    - ``FileNotFoundError`` -- CLUB_CONFIG_PATH points at a missing file.
    - ``ValueError`` -- unknown keys or invalid values.

Every successful call emits a ``CLUB_CONFIG_TRACE`` log entry.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from club_config.loader import load_config
from club_config.schema import ClubConfig

_logger = logging.getLogger("club_kernel.config")

_DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "CLUB_CONFIG_PATH"
DATABASE_URL_ENV = "CLUB_DATABASE_URL"


def get_active_config(config_path: Path | None = None) -> ClubConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Explicit YAML path.  Defaults to ``$CLUB_CONFIG_PATH``
            or the packaged defaults.
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        config_path = Path(env_path) if env_path else _DEFAULTS_PATH

    overrides = {}
    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        overrides["database_url"] = database_url

    config = load_config(config_path, overrides)

    _logger.info(
        "CLUB_CONFIG_TRACE",
        extra={
            "trace_type": "CLUB_CONFIG_TRACE",
            "config_path": str(config_path),
            "currency_code": config.currency_code,
            "cancellation_window_hours": config.cancellation_window_hours,
            "reporting_timezone": config.reporting_timezone,
            "database_url_overridden": bool(database_url),
        },
    )
    return config


__all__ = ["ClubConfig", "get_active_config", "load_config"]
