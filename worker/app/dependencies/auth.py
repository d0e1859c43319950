# worker/app/dependencies/auth.py
import logging

from fastapi import HTTPException, Request
from ..config import settings

log = logging.getLogger(__name__)


def require_auth(request: Request) -> bool:
    """
    Dependency that requires authentication for protected routes.
    If WORKER_AUTH_TOKEN is not set, authentication is disabled.
    """
    token = (settings.WORKER_AUTH_TOKEN or "").strip()
    if not token:
        log.debug("[auth] no auth token configured, skipping authentication")
        return True

    # Get the Authorization header manually
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=401, detail={"ok": False, "error": "unauthorized"}
        )

    # Check if it's a Bearer token
    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0] != "Bearer":
        raise HTTPException(
            status_code=401, detail={"ok": False, "error": "unauthorized"}
        )

    # Verify the token
    if parts[1] != token:
        raise HTTPException(
            status_code=401, detail={"ok": False, "error": "unauthorized"}
        )

    return True
