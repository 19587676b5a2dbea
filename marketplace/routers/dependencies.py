from __future__ import annotations

import secrets

from fastapi import Header, HTTPException

from marketplace.core.config import get_settings


def require_admin(x_admin_token: str = Header("")) -> None:
    """Operator-only routes; disabled outright when no ADMIN_TOKEN is configured."""
    expected = get_settings().admin_token
    if not expected:
        raise HTTPException(403, "Admin API disabled")
    if not secrets.compare_digest(x_admin_token.encode(), expected.encode()):
        raise HTTPException(401, "Invalid admin token")
