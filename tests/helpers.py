import asyncio
import time
from typing import Any, Optional

from starlette.requests import Request

from atproto_sessions.sealing import FernetSealer

TEST_SECRET = "test-secret-that-is-at-least-32-characters-long"
TEST_DID = "did:plc:test123"


def make_request(cookie: Optional[str] = None) -> Request:
    """Build a bare starlette Request carrying an optional Cookie header."""
    headers = []
    if cookie is not None:
        headers.append((b'cookie', cookie.encode('latin-1')))
    return Request({'type': 'http', 'method': 'GET', 'path': '/', 'headers': headers})


def now_ms() -> int:
    return int(time.time() * 1000)


def run(coro):
    return asyncio.run(coro)


def cookie_pair(set_cookie_header: str) -> str:
    """Return the `name=value` part of a Set-Cookie header."""
    return set_cookie_header.split(';')[0]


class RecordingLogger:
    """Logger fake that keeps (level, args) tuples."""

    def __init__(self) -> None:
        self.records: list[tuple[str, tuple[Any, ...]]] = []

    def debug(self, *args: Any) -> None:
        self.records.append(('debug', args))

    def info(self, *args: Any) -> None:
        self.records.append(('info', args))

    def warn(self, *args: Any) -> None:
        self.records.append(('warn', args))

    def error(self, *args: Any) -> None:
        self.records.append(('error', args))

    def levels(self) -> list[str]:
        return [lvl for lvl, _ in self.records]

    def text(self) -> str:
        return ' '.join(str(a) for _, args in self.records for a in args)


class BrokenSealSealer(FernetSealer):
    """Unseals normally but fails to seal, e.g. to break the refresh step."""

    def seal(self, data, password, ttl):
        raise RuntimeError('boom')
