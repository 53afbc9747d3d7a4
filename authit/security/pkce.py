"""PKCE verifier generation and the in-memory login-state cache."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import secrets
import time
from dataclasses import dataclass
from typing import Callable

from ..config import settings


def generate_verifier() -> str:
    """RFC 7636 code verifier, 43-128 URL-safe characters."""
    return secrets.token_urlsafe(64)[:128]


def code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    return secrets.token_urlsafe(32)


@dataclass
class PendingLogin:
    verifier: str
    issued_at: float


class PkceVerifierCache:
    """Maps login ``state`` to its PKCE verifier until the callback arrives.

    Entries are single-use and expire after ``ttl_seconds``. Stale entries are
    swept whenever a new login starts.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._pending: dict[str, PendingLogin] = {}
        self._lock = asyncio.Lock()

    @property
    def ttl(self) -> float:
        return float(self._ttl if self._ttl is not None else settings.pkce_ttl_seconds)

    def __len__(self) -> int:
        return len(self._pending)

    def _evict(self, now: float) -> None:
        cutoff = now - self.ttl
        for state in [s for s, p in self._pending.items() if p.issued_at <= cutoff]:
            del self._pending[state]

    async def put(self, state: str, verifier: str) -> None:
        now = self._clock()
        async with self._lock:
            self._evict(now)
            self._pending[state] = PendingLogin(verifier=verifier, issued_at=now)

    async def pop(self, state: str) -> str | None:
        """Remove and return the verifier for ``state``; None if unknown or stale."""
        now = self._clock()
        async with self._lock:
            pending = self._pending.pop(state, None)
        if pending is None or now - pending.issued_at >= self.ttl:
            return None
        return pending.verifier

    async def clear(self) -> None:
        async with self._lock:
            self._pending.clear()


pkce_cache = PkceVerifierCache()
