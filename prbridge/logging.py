"""Logging from config and env.

Levels (inclusive):
- ERROR: failed operations
- WARNING: partial failures, classified provider errors, and ERROR
- INFO: connects and service messages, WARNING, and ERROR
- DEBUG: pagination, rate limits and all levels above

Configure via config.yaml (logging.level, logging.format) or env (LOGGING_LEVEL, LOGGING_FORMAT).
"""

import logging

from prbridge.config import LoggingConfig

# Supported levels only (DEBUG, INFO, WARNING, ERROR)
LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

DEFAULT_LEVEL = "INFO"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER = "prbridge"

# Third-party loggers kept at WARNING unless DEBUG is requested (urllib3 logs every request)
NOISY_LOGGERS = ("urllib3",)


def _resolve_level(level: str) -> int:
    """Map level name to logging constant.

    Falls back to INFO if unknown.
    """
    return LEVELS.get(level.upper().strip(), logging.INFO)


class PRBridgeLogging:
    """Configures root logger from LoggingConfig (YAML + env LOGGING_*)."""

    def __init__(self, config: LoggingConfig) -> None:
        """Store logging config (level and format)."""
        self._level = _resolve_level(config.level)
        self._format = config.format or DEFAULT_FORMAT

    def setup(self) -> None:
        """Apply level and format to the root logger; quiet HTTP client loggers."""
        logging.basicConfig(
            level=self._level,
            format=self._format,
            force=True,
        )
        noisy_level = self._level if self._level == logging.DEBUG else max(self._level, logging.WARNING)
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(noisy_level)

    def get_logger(self, name: str) -> logging.Logger:
        """Logger under the ``prbridge`` namespace (``"cache"`` gives ``prbridge.cache``)."""
        if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
            return logging.getLogger(name)
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
