"""Logging utilities."""
from __future__ import annotations

import logging
import logging.config
from pathlib import Path

_CONFIG_PATH = Path(__file__).resolve().parent / "../.." / "configs" / "logging.yaml"


def configure_logging(level: str | None = None) -> None:
    """Configure logging from the YAML configuration file if present.

    ``level`` (usually ``LOG_LEVEL``) overrides the root level from the file.
    """
    if _CONFIG_PATH.exists():
        import yaml  # type: ignore[import-untyped]

        with _CONFIG_PATH.open("r", encoding="utf-8") as config_file:
            logging.config.dictConfig(yaml.safe_load(config_file))
        if level:
            logging.getLogger().setLevel(level.upper())
    else:
        logging.basicConfig(level=(level or "INFO").upper())
