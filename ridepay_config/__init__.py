"""
ridepay_config -- single public entrypoint for ride pay configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``: the CAO rate-table seed, hours codes and
    options, the default hours code, vacation brackets and driver
    onboarding defaults.

Architecture position:
    Configuration -- sits beside ``ridepay_kernel``.  Kernel services take
    the parsed ``RidePayConfig`` (or values from it) as constructor inputs.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration set is missing.
    - ``ValueError`` / ``KeyError`` -- the set fails parsing.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``RIDEPAY_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from ridepay_config.loader import load_config_file
from ridepay_config.schema import RidePayConfig

_logger = logging.getLogger("ridepay_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DATABASE_URL_ENV = "RIDEPAY_DATABASE_URL"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> RidePayConfig:
    """The ONLY public configuration entrypoint.

    ``RIDEPAY_DATABASE_URL`` overrides the database URL of the set.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    config = load_config_file(sets_dir / f"{name}.yaml")

    override = os.environ.get(DATABASE_URL_ENV)
    if override:
        config = replace(config, database_url=override)

    _logger.info(
        "RIDEPAY_CONFIG_TRACE",
        extra={
            "trace_type": "RIDEPAY_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "rate_row_count": len(config.rate_rows),
            "hours_code_count": len(config.hours_codes),
        },
    )
    return config


__all__ = ["DATABASE_URL_ENV", "RidePayConfig", "get_active_config"]
