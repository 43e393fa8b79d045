"""Actor extraction from the X-User-* headers set by the upstream gateway."""
from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

from caseflow.domain import Actor, Role

logger = logging.getLogger(__name__)


def get_actor(request: Request) -> Actor:
    """Build the authorization context for the current request.

    The gateway validates credentials and forwards ``X-User-ID``,
    ``X-User-Role`` and optionally ``X-User-Name``. The headers are trusted.
    """

    user_id = request.headers.get("X-User-ID")
    if not user_id:
        logger.warning("Missing X-User-ID header on %s", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID header required",
        )
    raw_role = (request.headers.get("X-User-Role") or Role.END_USER.value).strip().lower()
    try:
        role = Role(raw_role)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"unknown role: {raw_role}") from None
    return Actor(user_id=user_id, role=role, name=request.headers.get("X-User-Name"))
