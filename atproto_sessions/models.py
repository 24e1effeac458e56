from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CookieSessionData(BaseModel):
    """Identity record stored in the encrypted session cookie.

    Field names are serialized by alias (`createdAt`, `lastAccessed`) so the
    sealed JSON keeps the same shape regardless of the Python naming.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    did: str = Field(min_length=1)
    created_at: int = Field(alias='createdAt')
    last_accessed: int = Field(alias='lastAccessed')

    def to_sealable(self) -> dict:
        return self.model_dump(by_alias=True)


# Deprecated: use CookieSessionData.
SessionData = CookieSessionData


class StoredSessionData(BaseModel):
    """Decode-time view of an unsealed cookie.

    Older mobile tokens were sealed without `createdAt`, so every field is
    optional here and defaults are applied by `refreshed`.
    """

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    did: Optional[str] = None
    created_at: Optional[int] = Field(default=None, alias='createdAt')
    last_accessed: Optional[int] = Field(default=None, alias='lastAccessed')

    def refreshed(self, now: int) -> CookieSessionData:
        return CookieSessionData(
            did=self.did,
            created_at=self.created_at if self.created_at is not None else now,
            last_accessed=now,
        )


class MobileTokenData(BaseModel):
    did: str = Field(min_length=1)


class SessionErrorType(str, Enum):
    NO_COOKIE = 'NO_COOKIE'
    INVALID_COOKIE = 'INVALID_COOKIE'
    SESSION_EXPIRED = 'SESSION_EXPIRED'
    UNKNOWN = 'UNKNOWN'


class SessionErrorInfo(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: SessionErrorType
    message: str
    # Diagnostic detail (underlying exception text etc). Not for clients.
    details: Any = None


class SessionResult(BaseModel):
    """Outcome of a session lookup: either data plus a renewal header, or an error.

    Use `SessionResult.ok` / `SessionResult.fail` rather than the constructor.
    """

    model_config = ConfigDict(frozen=True)

    data: Optional[CookieSessionData] = None
    set_cookie_header: Optional[str] = None
    error: Optional[SessionErrorInfo] = None

    @classmethod
    def ok(cls, data: CookieSessionData, set_cookie_header: str) -> 'SessionResult':
        return cls(data=data, set_cookie_header=set_cookie_header)

    @classmethod
    def fail(cls, type: SessionErrorType, message: str, details: Any = None) -> 'SessionResult':
        return cls(error=SessionErrorInfo(type=type, message=message, details=details))

    def __bool__(self) -> bool:
        return self.data is not None
