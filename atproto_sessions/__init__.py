"""Framework-agnostic encrypted cookie sessions for AT Protocol applications."""

from .config import SessionConfig, load_config
from .errors import ConfigurationError, CookieError, SessionError
from .interfaces import Logger, Sealer, SessionManagerProtocol
from .logging_config import NullLogger, StdlibLogger, configure_logging
from .models import (
    CookieSessionData,
    MobileTokenData,
    SessionData,
    SessionErrorInfo,
    SessionErrorType,
    SessionResult,
)
from .sealing import FernetSealer, UnsealError
from .sessions import SessionManager

__all__ = [
	"SessionManager",
	"SessionConfig",
	"load_config",
	"CookieSessionData",
	"SessionData",
	"MobileTokenData",
	"SessionErrorInfo",
	"SessionErrorType",
	"SessionResult",
	"Logger",
	"Sealer",
	"SessionManagerProtocol",
	"NullLogger",
	"StdlibLogger",
	"configure_logging",
	"FernetSealer",
	"UnsealError",
	"SessionError",
	"ConfigurationError",
	"CookieError",
]
