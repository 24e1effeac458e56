from typing import Callable, Optional
import functools
import inspect
import logging
import time

from fastapi import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from atproto_sessions.models import CookieSessionData, SessionErrorType, SessionResult
from atproto_sessions.interfaces import SessionManagerProtocol

logger = logging.getLogger(__name__)

# Helper headers route handlers set to ask the middleware for a cookie change
SET_SESSION_HEADER = 'x-set-session-did'
CLEAR_SESSION_HEADER = 'x-clear-session'

# A cookie was sent but is unusable; tell the browser to drop it
_CLEAR_ON = (SessionErrorType.INVALID_COOKIE, SessionErrorType.SESSION_EXPIRED)

# Client-facing messages; error details stay in the logs
_DENIED_MESSAGES = {
    SessionErrorType.NO_COOKIE: 'Please log in to continue.',
    SessionErrorType.INVALID_COOKIE: 'Your session is invalid. Please log in again.',
    SessionErrorType.SESSION_EXPIRED: 'Your session has expired. Please log in again.',
    SessionErrorType.UNKNOWN: 'Your session could not be verified. Please log in again.',
}


class SessionMiddleware(BaseHTTPMiddleware):
    """Validate the session cookie of each request and keep it fresh.

    The validated `SessionResult` is stored on `request.state.session`. On the
    way out the refreshed cookie is set, or a clearing cookie when the
    request carried an unusable one. Handlers log users in or out by setting
    `x-set-session-did: <did>` or `x-clear-session: 1` on their response;
    the middleware converts these into the proper Set-Cookie header.
    """

    def __init__(self, app, session_manager: SessionManagerProtocol):
        super().__init__(app)
        self.session_manager = session_manager

    async def dispatch(self, request: Request, call_next):
        result = await self.session_manager.get_session_from_request(request)
        request.state.session = result

        response: Response = await call_next(request)

        did = response.headers.get(SET_SESSION_HEADER)
        clear = response.headers.get(CLEAR_SESSION_HEADER)
        if did or clear:
            for name in (SET_SESSION_HEADER, CLEAR_SESSION_HEADER):
                if name in response.headers:
                    del response.headers[name]
            self._drop_session_cookies(response)

        if did:
            # Re-login of the same user keeps the original creation time
            created_at = result.data.created_at if result.data and result.data.did == did else None
            header = await self._login(did, created_at)
            response.headers.append('set-cookie', header)
        elif clear:
            logger.debug('Clearing session cookie on handler request')
            response.headers.append('set-cookie', self.session_manager.get_clear_cookie_header())
        elif result.set_cookie_header:
            response.headers.append('set-cookie', result.set_cookie_header)
        elif result.error and result.error.type in _CLEAR_ON:
            logger.debug('Clearing rejected session cookie: %s', result.error.type.value)
            response.headers.append('set-cookie', self.session_manager.get_clear_cookie_header())
        return response

    def _drop_session_cookies(self, response: Response) -> None:
        # Only the session cookie is replaced; other cookies set by the handler stay
        prefix = f'{self.session_manager.cookie_name}='.encode('latin-1')
        raw = response.headers.raw
        raw[:] = [(k, v) for k, v in raw if not (k == b'set-cookie' and v.startswith(prefix))]

    async def _login(self, did: str, created_at: Optional[int]) -> str:
        now = int(time.time() * 1000)
        data = CookieSessionData(did=did, created_at=created_at or now, last_accessed=now)
        logger.debug('Creating session for DID %s', did)
        return await self.session_manager.create_session(data)


def get_session(request: Request) -> SessionResult:
    """Return the SessionResult stored by SessionMiddleware for this request."""
    result = getattr(request.state, 'session', None)
    if result is None:
        return SessionResult.fail(SessionErrorType.NO_COOKIE, 'Session middleware is not installed')
    return result


def require_session(func: Callable) -> Callable:
    """Async-only decorator that ensures a valid session exists.

    Preserves the wrapped function's signature so FastAPI validation still works.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        request: Optional[Request] = None
        for a in args:
            if isinstance(a, Request):
                request = a
                break
        if request is None:
            request = kwargs.get('request')
        if request is None:
            raise HTTPException(status_code=401, detail={'error': 'access_denied', 'message': 'Missing request; cannot check session.'})

        result = get_session(request)
        if not result:
            error_type = result.error.type if result.error else SessionErrorType.UNKNOWN
            raise HTTPException(status_code=401, detail={'error': error_type.value, 'message': _DENIED_MESSAGES[error_type]})
        return await func(*args, **kwargs)

    wrapper.__signature__ = inspect.signature(func)  # pyright: ignore[reportAttributeAccessIssue]
    return wrapper
