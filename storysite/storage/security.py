"""Credential hashing for account passwords (PBKDF2-SHA256)."""

from __future__ import annotations

import base64
from dataclasses import dataclass
import hashlib
import hmac
import os
from typing import Optional


PBKDF2_ALGORITHM = "pbkdf2_sha256"
PBKDF2_ROUNDS = 260_000


@dataclass(frozen=True)
class _EncodedHash:
    rounds: int
    salt: bytes
    digest: bytes


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _derive(password: str, salt: bytes, rounds: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)


def _parse(encoded_hash: str) -> Optional[_EncodedHash]:
    try:
        algorithm, rounds_str, salt_b64, digest_b64 = encoded_hash.split("$", 3)
        if algorithm != PBKDF2_ALGORITHM:
            return None
        return _EncodedHash(
            rounds=int(rounds_str),
            salt=base64.b64decode(salt_b64.encode("ascii")),
            digest=base64.b64decode(digest_b64.encode("ascii")),
        )
    except (ValueError, TypeError):
        return None


def hash_password(password: str, *, rounds: int = PBKDF2_ROUNDS) -> str:
    """Return `algorithm$rounds$salt$digest` for a fresh random salt."""

    salt = os.urandom(16)
    return f"{PBKDF2_ALGORITHM}${rounds}${_b64(salt)}${_b64(_derive(password, salt, rounds))}"


def verify_password(password: str, encoded_hash: str) -> bool:
    parsed = _parse(encoded_hash)
    if parsed is None:
        return False
    return hmac.compare_digest(_derive(password, parsed.salt, parsed.rounds), parsed.digest)


def needs_rehash(encoded_hash: str) -> bool:
    """True when the stored hash uses fewer rounds than the current policy."""

    parsed = _parse(encoded_hash)
    return parsed is None or parsed.rounds < PBKDF2_ROUNDS
