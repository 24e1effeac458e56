from typing import Any, Protocol, Union, runtime_checkable

from starlette.requests import Request

from atproto_sessions.models import CookieSessionData, MobileTokenData, SessionResult


@runtime_checkable
class Logger(Protocol):
    """Leveled logger accepted by `SessionManager`.

    Each method takes any number of loggable values. `logging.Logger` does not
    fit directly (it has `warning`); wrap it in `StdlibLogger`.
    """

    def debug(self, *args: Any) -> None: ...

    def info(self, *args: Any) -> None: ...

    def warn(self, *args: Any) -> None: ...

    def error(self, *args: Any) -> None: ...


@runtime_checkable
class Sealer(Protocol):
    """Authenticated encryption primitive used for session cookies.

    `unseal` raises `atproto_sessions.sealing.UnsealError` on tampered,
    undecryptable or expired envelopes. Input that is not an envelope at all
    yields an empty dict.
    """

    def seal(self, data: dict, password: Union[str, bytes], ttl: int) -> str: ...

    def unseal(self, sealed: str, password: Union[str, bytes]) -> dict: ...


@runtime_checkable
class SessionManagerProtocol(Protocol):
    """Public surface of `atproto_sessions.sessions.SessionManager`."""

    @property
    def cookie_name(self) -> str: ...

    @property
    def session_ttl(self) -> int: ...

    async def get_session_from_request(self, request: Request) -> SessionResult: ...

    async def create_session(self, data: CookieSessionData) -> str: ...

    def get_clear_cookie_header(self) -> str: ...

    async def seal_token(self, data: MobileTokenData) -> str: ...

