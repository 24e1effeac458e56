from __future__ import annotations
import logging
from pathlib import Path
import yaml
from typing import Any, Optional

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s]: %(message)s'
DEFAULT_CONFIG_PATH = Path('data/config/session_config.yml')


def configure_logging(level: Optional[str] = None, config_path: Optional[Path] = None) -> logging.Logger:
    """Configure root logging for an application using the session manager.

    The level comes from `level` when given, otherwise from `log_level` in the
    YAML config file, otherwise WARNING. Returns the package logger.
    """
    DEFAULT_LOG_LEVEL = logging.WARNING

    if level is None:
        cfg_path = config_path or DEFAULT_CONFIG_PATH
        if cfg_path.exists():
            try:
                with cfg_path.open('r', encoding='utf-8') as _f:
                    _cfg = yaml.safe_load(_f) or {}
                    level = _cfg.get('log_level') if isinstance(_cfg, dict) else None
            except (OSError, yaml.YAMLError):
                # If config parse fails, fall back to default level
                level = None

    if level:
        DEFAULT_LOG_LEVEL = getattr(logging, str(level).upper(), logging.WARNING)

    # Reconfigure root handlers to use the selected level and format
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(level=DEFAULT_LOG_LEVEL, format=LOG_FORMAT)

    logger = logging.getLogger('atproto_sessions')
    logger.debug('Log level set to: %s', logging.getLevelName(DEFAULT_LOG_LEVEL))
    return logger


class NullLogger:
    """Logger that discards everything. Used when no logger is configured."""

    def debug(self, *args: Any) -> None:
        pass

    def info(self, *args: Any) -> None:
        pass

    def warn(self, *args: Any) -> None:
        pass

    def error(self, *args: Any) -> None:
        pass


class StdlibLogger:
    """Adapt a `logging.Logger` to the four-method session `Logger` interface.

    Values are joined with spaces, so `logger.error("Failed:", {"error": e})`
    becomes a single record.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger('atproto_sessions')

    @staticmethod
    def _join(args: tuple) -> str:
        return ' '.join(str(a) for a in args)

    def debug(self, *args: Any) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug('%s', self._join(args))

    def info(self, *args: Any) -> None:
        if self._logger.isEnabledFor(logging.INFO):
            self._logger.info('%s', self._join(args))

    def warn(self, *args: Any) -> None:
        self._logger.warning('%s', self._join(args))

    def error(self, *args: Any) -> None:
        self._logger.error('%s', self._join(args))
