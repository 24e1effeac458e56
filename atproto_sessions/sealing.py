"""Authenticated, expiring envelopes for session cookies.

Envelopes are Fernet tokens (AES-CBC + HMAC-SHA256 via the cryptography
library) keyed by a PBKDF2 derivation of the cookie secret with a fresh
random salt per envelope. The expiry is sealed together with the payload so it
cannot be altered without breaking the HMAC:

    Fe1*<salt, base64url>*<fernet token>

Values that are not shaped like an envelope at all unseal to `{}`; anything
that is shaped like one but fails verification raises `UnsealError`.
"""
import base64
import json
import os
import time
from typing import Any, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from atproto_sessions.errors import SessionError

MAC_PREFIX = 'Fe1'
SALT_SIZE = 16
DEFAULT_ITERATIONS = 1000
# Allowed clock difference between the sealing and unsealing host
TIMESTAMP_SKEW_MS = 60 * 1000


class UnsealError(SessionError):
    """Envelope was tampered with, sealed under another secret, or has expired."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "UNSEAL_ERROR")


def _now_ms() -> int:
    return int(time.time() * 1000)


class FernetSealer:
    """Seal/unseal JSON-serializable dicts with a shared secret.

    The iteration count is a property of the sealer, not of the envelope, so
    a crafted cookie cannot make the server run an arbitrarily expensive KDF.
    Secrets are expected to be long random strings; the KDF only spreads them
    into a Fernet key.
    """

    def __init__(self, *, iterations: int = DEFAULT_ITERATIONS) -> None:
        self._iterations = iterations

    def _derive_key(self, password: Union[str, bytes], salt: bytes) -> bytes:
        if isinstance(password, str):
            password = password.encode('utf-8')
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self._iterations,
        )
        return base64.urlsafe_b64encode(kdf.derive(password))

    def seal(self, data: dict, password: Union[str, bytes], ttl: int) -> str:
        """Encrypt `data` and return the envelope string.

        `ttl` is in seconds; 0 means the envelope never expires.
        """
        salt = os.urandom(SALT_SIZE)
        f = Fernet(self._derive_key(password, salt))
        exp = _now_ms() + ttl * 1000 if ttl else None
        inner = json.dumps({'exp': exp, 'data': data}, separators=(',', ':')).encode('utf-8')
        token = f.encrypt(inner)
        return '*'.join((MAC_PREFIX, base64.urlsafe_b64encode(salt).decode('ascii'), token.decode('ascii')))

    def unseal(self, sealed: str, password: Union[str, bytes]) -> dict:
        parts = sealed.split('*')
        if len(parts) != 3 or parts[0] != MAC_PREFIX:
            return {}

        _, salt_b64, token = parts
        try:
            salt = base64.urlsafe_b64decode(salt_b64)
        except ValueError as e:
            raise UnsealError('Invalid salt encoding') from e
        if len(salt) != SALT_SIZE:
            raise UnsealError('Invalid salt length')

        f = Fernet(self._derive_key(password, salt))
        try:
            inner = f.decrypt(token)
        except (InvalidToken, ValueError) as e:
            raise UnsealError('Bad hmac value') from e

        try:
            frame: Any = json.loads(inner.decode('utf-8'))
        except ValueError as e:
            raise UnsealError('Invalid seal payload') from e
        if not isinstance(frame, dict) or not isinstance(frame.get('data'), dict):
            raise UnsealError('Invalid seal payload')

        exp = frame.get('exp')
        if exp is not None and exp <= _now_ms() - TIMESTAMP_SKEW_MS:
            raise UnsealError('Expired seal')
        return frame['data']


_default_sealer = FernetSealer()


def seal_data(data: dict, password: Union[str, bytes], ttl: int) -> str:
    return _default_sealer.seal(data, password, ttl)


def unseal_data(sealed: str, password: Union[str, bytes]) -> dict:
    return _default_sealer.unseal(sealed, password)
