"""HMAC-signed identifier tokens.

A token is ``{id}.{signature}`` where ``id`` is the canonical (simple hex)
form of a UUID and ``signature`` is base64url, unpadded,
HMAC-SHA256 over the id. The same codec backs provisioning links and
session cookies; each use gets its own ``purpose`` so a token minted for
one cannot be replayed as the other.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import uuid
from typing import Callable, Generic, TypeVar

from .config import settings
from .errors import InvalidEncoding, InvalidFormat, InvalidIdentifier, SignatureMismatch

T = TypeVar("T")

PROVISION_PURPOSE = "provision"
SESSION_PURPOSE = "session"


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * ((4 - (len(data) % 4)) % 4)
    return base64.b64decode((data + padding).encode("ascii"), altchars=b"-_", validate=True)


def _uuid_encode(value: uuid.UUID) -> str:
    return value.hex


def _uuid_parse(raw: str) -> uuid.UUID:
    value = uuid.UUID(hex=raw)
    if value.hex != raw:
        raise ValueError("identifier is not in canonical form")
    return value


class TokenCodec(Generic[T]):
    """Sign identifiers and verify signed tokens back into identifiers."""

    def __init__(
        self,
        secret: str,
        purpose: str,
        *,
        encode: Callable[[T], str] = _uuid_encode,  # type: ignore[assignment]
        parse: Callable[[str], T] = _uuid_parse,  # type: ignore[assignment]
    ):
        if not secret:
            raise RuntimeError("session_secret is required to sign tokens")
        self._key = hmac.new(
            secret.encode("utf-8"), f"authit:{purpose}".encode("utf-8"), hashlib.sha256
        ).digest()
        self._encode = encode
        self._parse = parse

    def _mac(self, body: str) -> bytes:
        return hmac.new(self._key, body.encode("utf-8"), hashlib.sha256).digest()

    def sign(self, value: T) -> str:
        body = self._encode(value)
        return f"{body}.{_b64url_encode(self._mac(body))}"

    def verify(self, token: str) -> T:
        parts = (token or "").split(".")
        if len(parts) != 2:
            raise InvalidFormat("invalid token format")
        body, provided_sig = parts

        try:
            signature = _b64url_decode(provided_sig)
        except (binascii.Error, ValueError) as exc:
            raise InvalidEncoding("invalid signature encoding") from exc
        # Reject non-canonical encodings (stray padding bits in the last char).
        if _b64url_encode(signature) != provided_sig:
            raise InvalidEncoding("invalid signature encoding")

        if not hmac.compare_digest(signature, self._mac(body)):
            raise SignatureMismatch("invalid signature")

        try:
            return self._parse(body)
        except (TypeError, ValueError) as exc:
            raise InvalidIdentifier("signed token carries an invalid identifier") from exc


def provision_codec() -> TokenCodec[uuid.UUID]:
    return TokenCodec(settings.session_secret, PROVISION_PURPOSE)


def session_codec() -> TokenCodec[uuid.UUID]:
    return TokenCodec(settings.session_secret, SESSION_PURPOSE)
