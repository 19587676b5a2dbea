"""Local filesystem storage for vendor application documents."""
from __future__ import annotations

import os
import re
import secrets

from marketplace.core.config import get_settings

_SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


class LocalDocumentStore:
    """Writes uploads under UPLOADS_DIR and hands back an opaque reference."""

    def __init__(self, base_dir: str | None = None) -> None:
        self.base_dir = base_dir or get_settings().uploads_dir

    def save(self, kind: str, filename: str, data: bytes) -> str:
        if not data:
            raise ValueError("empty document")
        clean = _SAFE_NAME.sub("_", os.path.basename(filename or "")).strip("._") or "document"
        name = f"{secrets.token_hex(8)}-{clean}"
        dest_dir = os.path.join(self.base_dir, kind)
        os.makedirs(dest_dir, exist_ok=True)
        with open(os.path.join(dest_dir, name), "wb") as f:
            f.write(data)
        return f"/static/uploads/{kind}/{name}"
