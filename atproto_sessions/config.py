from __future__ import annotations
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import yaml

from atproto_sessions.errors import ConfigurationError
from atproto_sessions.interfaces import Logger
from atproto_sessions.logging_config import DEFAULT_CONFIG_PATH, StdlibLogger, configure_logging

logger = logging.getLogger(__name__)

# 7 days
DEFAULT_SESSION_TTL = 60 * 60 * 24 * 7
DEFAULT_COOKIE_NAME = 'sid'


@dataclass(frozen=True)
class SessionConfig:
    cookie_secret: Union[str, bytes]
    cookie_name: str = DEFAULT_COOKIE_NAME
    # Seconds
    session_ttl: int = DEFAULT_SESSION_TTL
    # If None, the manager logs nothing
    logger: Optional[Logger] = None


def _parse_ttl(value) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f'session_ttl must be an integer number of seconds, got {value!r}')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f'session_ttl must be an integer number of seconds, got {value!r}')


def load_config(config_path: Optional[Path] = None) -> SessionConfig:
    """Build a SessionConfig from a YAML file and the environment.

    Recognised YAML keys: `cookie_secret`, `cookie_name`, `session_ttl`,
    `log_level`. `COOKIE_SECRET`, `COOKIE_NAME` and `SESSION_TTL` environment
    variables take precedence over the file, so the secret need not be
    written to disk. A missing file is not an error.

    The secret is not validated here; `SessionManager` rejects a missing or
    short secret when it is constructed.
    """
    cfg_path = config_path or DEFAULT_CONFIG_PATH
    cfg: dict = {}
    if cfg_path.exists():
        with cfg_path.open('r', encoding='utf-8') as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f'Could not parse {cfg_path}: {e}')
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigurationError(f'{cfg_path} must contain a mapping')
        cfg = loaded or {}
        logger.debug('Loaded session config from %s', cfg_path)

    secret = os.getenv('COOKIE_SECRET') or cfg.get('cookie_secret') or ''
    if not isinstance(secret, (str, bytes)):
        # e.g. an unquoted all-digit secret, which YAML parses as an int
        raise ConfigurationError(f'cookie_secret in {cfg_path} must be a string; quote it in the YAML file')
    cookie_name = os.getenv('COOKIE_NAME') or cfg.get('cookie_name') or DEFAULT_COOKIE_NAME
    ttl_raw = os.getenv('SESSION_TTL') or cfg.get('session_ttl')
    session_ttl = DEFAULT_SESSION_TTL if ttl_raw is None else _parse_ttl(ttl_raw)

    session_logger: Optional[Logger] = None
    log_level = cfg.get('log_level')
    if log_level:
        session_logger = StdlibLogger(configure_logging(level=log_level))

    return SessionConfig(
        cookie_secret=secret,
        cookie_name=str(cookie_name),
        session_ttl=session_ttl,
        logger=session_logger,
    )
