"""API key authentication dependencies for protected routers."""

from __future__ import annotations

import os

from fastapi import Header
from fastapi import HTTPException
from fastapi import Request


def require_admin_key(request: Request, x_admin_key: str | None = Header(default=None, alias="X-Admin-Key")) -> None:
    """Guard for administrative routes (review, finalize, directory provisioning)."""
    if request.method == "OPTIONS":
        return

    expected = os.getenv("PANELGRADE_ADMIN_API_KEY", "").strip()
    if not expected:
        return

    if x_admin_key != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")
