"""Cookie-backed sessions for AT Protocol applications.

The cookie is the only session state: it holds a sealed `CookieSessionData`
and is reissued with a fresh `lastAccessed` on every successful read, so an
active user's session slides forward while an idle one expires with its seal.

Example:

    sessions = SessionManager(SessionConfig(cookie_secret=os.environ['COOKIE_SECRET']))

    result = await sessions.get_session_from_request(request)
    if result:
        # result.data.did is the caller; set result.set_cookie_header on the response
        ...

    set_cookie = await sessions.create_session(CookieSessionData(
        did='did:plc:abc123', created_at=now_ms, last_accessed=now_ms))
"""
import re
import time
from typing import Optional
from urllib.parse import quote, unquote

from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from atproto_sessions.config import SessionConfig
from atproto_sessions.errors import ConfigurationError, CookieError
from atproto_sessions.interfaces import Logger, Sealer
from atproto_sessions.logging_config import NullLogger
from atproto_sessions.models import (
    CookieSessionData,
    MobileTokenData,
    SessionErrorType,
    SessionResult,
    StoredSessionData,
)
from atproto_sessions.sealing import FernetSealer, UnsealError

# Minimum cookie secret length for the sealing key derivation
MIN_SECRET_LENGTH = 32

# Browsers reject cookies whose name=value exceeds this many bytes
COOKIE_SIZE_LIMIT = 4096

COOKIE_ATTRIBUTES = 'Path=/; HttpOnly; SameSite=Lax; Secure'

# A "%" not followed by two hex digits
_BAD_PERCENT = re.compile(r'%(?![0-9A-Fa-f]{2})')


def _now_ms() -> int:
    return int(time.time() * 1000)


def _decode_cookie_value(raw_value: str) -> Optional[str]:
    """URL-decode a cookie value, or return None if it is not valid percent-encoded UTF-8."""
    if _BAD_PERCENT.search(raw_value):
        return None
    try:
        return unquote(raw_value, errors='strict')
    except UnicodeDecodeError:
        return None


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


class SessionManager:
    """Issue, validate and refresh sealed session cookies.

    Configuration is fixed at construction; the manager holds no per-request
    state and may be shared across concurrent requests.
    """

    def __init__(self, config: SessionConfig, *, sealer: Optional[Sealer] = None) -> None:
        if not config.cookie_secret:
            raise ConfigurationError('cookieSecret is required')
        if not isinstance(config.cookie_secret, (str, bytes)):
            raise ConfigurationError('cookieSecret must be a string')
        if len(config.cookie_secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(
                f'cookieSecret must be at least {MIN_SECRET_LENGTH} characters for secure encryption'
            )

        self._cookie_secret = config.cookie_secret
        self._cookie_name = config.cookie_name
        self._session_ttl = config.session_ttl
        self._logger: Logger = config.logger or NullLogger()
        self._sealer: Sealer = sealer or FernetSealer()

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    @property
    def session_ttl(self) -> int:
        return self._session_ttl

    async def get_session_from_request(self, request: Request) -> SessionResult:
        """Extract and validate the session cookie of `request`.

        On success the result carries the refreshed session data and a
        Set-Cookie header that should be sent with the response to extend the
        session. Failures are reported in `result.error`, never raised.
        """
        try:
            cookie_header = request.headers.get('cookie')
            cookie_prefix = f'{self._cookie_name}='
            if not cookie_header or cookie_prefix not in cookie_header:
                self._logger.debug('No session cookie found in request')
                return SessionResult.fail(SessionErrorType.NO_COOKIE, 'No session cookie found in request')

            # Only split on the first '=': sealed values may contain '='
            cookies = (c.strip() for c in cookie_header.split(';'))
            session_cookie = next((c[len(cookie_prefix):] for c in cookies if c.startswith(cookie_prefix)), None)
            if not session_cookie:
                self._logger.debug('Session cookie found but could not be parsed')
                return SessionResult.fail(SessionErrorType.INVALID_COOKIE, 'Session cookie could not be parsed')

            return await self._unseal_and_refresh(session_cookie)
        except Exception as e:
            self._logger.error('Failed to get session from request:', {'error': _describe(e)})
            return SessionResult.fail(SessionErrorType.UNKNOWN, _describe(e), details=e)

    async def _unseal_and_refresh(self, raw_value: str) -> SessionResult:
        """Validate a sealed cookie value and reissue it with a new access time.

        This is the only decode path: mobile tokens from `seal_token` come back
        as ordinary cookie values and end up here too.
        """
        sealed = _decode_cookie_value(raw_value)
        if sealed is None:
            self._logger.debug('Session cookie is not valid percent-encoding')
            return SessionResult.fail(SessionErrorType.INVALID_COOKIE, 'Session cookie could not be parsed')

        try:
            unsealed = await run_in_threadpool(self._sealer.unseal, sealed, self._cookie_secret)
        except UnsealError as e:
            self._logger.error('Failed to unseal session cookie:', {'error': _describe(e)})
            return SessionResult.fail(
                SessionErrorType.SESSION_EXPIRED,
                'Session cookie is invalid or expired',
                details=_describe(e),
            )

        try:
            stored = StoredSessionData.model_validate(unsealed)
        except ValidationError:
            stored = None
        if stored is None or not stored.did:
            self._logger.error('No DID found in session data:', unsealed)
            return SessionResult.fail(SessionErrorType.INVALID_COOKIE, 'No DID found in session data')

        created = (
            time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(stored.created_at / 1000))
            if stored.created_at is not None
            else 'N/A (mobile token)'
        )
        self._logger.info(f'Session extracted: DID={stored.did}, created={created}')

        refreshed = stored.refreshed(_now_ms())
        set_cookie_header = await self.create_session(refreshed)

        self._logger.info(
            f'Session refreshed for DID: {refreshed.did}, expires in {round(self._session_ttl / 86400)} days'
        )
        return SessionResult.ok(refreshed, set_cookie_header)

    async def create_session(self, data: CookieSessionData) -> str:
        """Seal `data` and return the Set-Cookie header value for it."""
        sealed = await run_in_threadpool(self._sealer.seal, data.to_sealable(), self._cookie_secret, self._session_ttl)
        cookie = f'{self._cookie_name}={quote(sealed, safe="")}'
        if len(cookie.encode('utf-8')) > COOKIE_SIZE_LIMIT:
            raise CookieError(
                f'Session cookie is {len(cookie)} bytes, larger than the {COOKIE_SIZE_LIMIT} byte browser limit'
            )
        return f'{cookie}; {COOKIE_ATTRIBUTES}; Max-Age={self._session_ttl}'

    def get_clear_cookie_header(self) -> str:
        """Set-Cookie header value that makes the client drop the session cookie."""
        return f'{self._cookie_name}=; {COOKIE_ATTRIBUTES}; Max-Age=0'

    async def seal_token(self, data: MobileTokenData) -> str:
        """Seal a session for delivery outside a cookie (mobile OAuth callback).

        The app receives the token through its URL scheme redirect and then
        presents it as the session cookie value; it is validated by
        `get_session_from_request` like any other cookie.
        """
        now = _now_ms()
        token_data = CookieSessionData(did=data.did, created_at=now, last_accessed=now)
        return await run_in_threadpool(self._sealer.seal, token_data.to_sealable(), self._cookie_secret, self._session_ttl)
