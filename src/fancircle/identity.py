"""Credentials and sessions.

The core only ever asks "who is calling?" through `IdentityGate`. The file
gate keeps a signed token next to the user, the way a CLI login would; the
token payload is `{"email", "exp"}` signed with HMAC-SHA256.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import bcrypt

logger = logging.getLogger(__name__)


class IdentityGate(Protocol):
    def current_identity(self) -> str | None: ...


class SessionGate(IdentityGate, Protocol):
    """An identity gate that can also start and end sessions."""

    def open(self, email: str) -> None: ...

    def close(self) -> bool: ...


@dataclass(slots=True)
class PasswordHasher:
    rounds: int = 12

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed: str | None) -> bool:
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash.
            return False


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _unb64(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


@dataclass(slots=True)
class TokenSigner:
    secret: str
    ttl_seconds: int = 3600
    clock: Callable[[], float] = time.time

    def _sign(self, body: str) -> str:
        return _b64(hmac.new(self.secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).digest())

    def issue(self, email: str) -> str:
        payload = {"email": email, "exp": int(self.clock()) + self.ttl_seconds}
        body = _b64(json.dumps(payload, sort_keys=True).encode("utf-8"))
        return f"{body}.{self._sign(body)}"

    def verify(self, token: str) -> str | None:
        """Email carried by a valid, unexpired token; None otherwise."""
        try:
            body, sig = token.strip().split(".", 1)
        except ValueError:
            return None
        if not hmac.compare_digest(sig.encode("utf-8"), self._sign(body).encode("utf-8")):
            logger.warning("rejected session token with a bad signature")
            return None
        try:
            payload = json.loads(_unb64(body))
        except (ValueError, UnicodeDecodeError):
            return None
        if not isinstance(payload, dict):
            return None
        if int(payload.get("exp", 0)) < self.clock():
            logger.info("session token expired")
            return None
        return payload.get("email")


class FileSessionGate:
    """Identity gate backed by a token file."""

    def __init__(self, path: str | Path, signer: TokenSigner):
        self.path = Path(path).expanduser()
        self.signer = signer

    def current_identity(self) -> str | None:
        if not self.path.exists():
            return None
        return self.signer.verify(self.path.read_text(encoding="utf-8"))

    def open(self, email: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.signer.issue(email), encoding="utf-8")
        self.path.chmod(0o600)

    def close(self) -> bool:
        if not self.path.exists():
            return False
        self.path.unlink()
        return True
