"""Logging levels and setup for the console entry point."""

import logging

# Below DEBUG; used for raw API payload dumps.
VERBOSE = 5
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_level(level_name: str | None) -> int:
    """Map a level name like 'Info' or 'verbose' to its numeric level.

    Unknown names fall back to INFO.
    """
    if not level_name:
        return logging.INFO
    name = level_name.strip().upper()
    if name == "VERBOSE":
        return VERBOSE
    if name == "WARN":
        name = "WARNING"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level_name: str | None = None) -> int:
    """Configure root logging and return the level in effect."""
    level = resolve_level(level_name)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return level
