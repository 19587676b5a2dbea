"""Username derivation helpers."""
from __future__ import annotations

import re
from typing import Iterator

USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9_]{3,20}")


def is_valid_username(value: str | None) -> bool:
    """Return True when the handle matches the allowed characters and length."""
    if not value:
        return False
    return bool(USERNAME_PATTERN.fullmatch(value))


def email_local_part(email: str) -> str:
    return (email or "").split("@", 1)[0]


def canonicalize(local_part: str) -> str:
    return (local_part or "").replace(".", "_")


def candidates(base: str, max_attempts: int) -> Iterator[str]:
    """Yield ``base``, ``base1``, ``base2``... at most ``max_attempts`` values."""
    if max_attempts <= 0:
        return
    yield base
    for suffix in range(1, max_attempts):
        yield f"{base}{suffix}"
