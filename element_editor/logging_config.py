"""Logging set-up from the ``logging`` configuration section."""

import logging
from typing import Any, Dict, Optional


def get_logging_level(level_str):
    """Map string logging level to logging constant."""
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    if not isinstance(level_str, str):
        return logging.INFO
    return level_map.get(level_str.upper(), logging.INFO)


def configure_logging(config: Optional[Dict[str, Any]] = None) -> int:
    """
    Configure root logging from configuration.

    Args:
        config: Complete configuration dictionary; only ``logging.level`` and
            ``logging.format`` are read

    Returns:
        The numeric level that was applied
    """
    logging_config = (config or {}).get('logging') or {}
    level_str = logging_config.get('level', 'INFO')
    log_format = logging_config.get('format')

    level = get_logging_level(level_str)
    if log_format:
        logging.basicConfig(level=level, format=log_format)
    else:
        logging.basicConfig(level=level)
    logging.getLogger().setLevel(level)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured to level: {logging.getLevelName(level)}")
    return level
