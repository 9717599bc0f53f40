"""API-key guard for the engine's HTTP surface.

Reviewer identity is never read from here: approve/reject requests carry
an explicit ``reviewer_id`` so the audit trail records who acted.
"""

import logging
import secrets
from typing import Annotated

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from app.core.config import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(
    name=settings.api_key_header,
    auto_error=False,  # Missing keys are handled below so auth can be disabled
)


def verify_api_key(
    request: Request,
    api_key: Annotated[str | None, Security(api_key_header)],
) -> str | None:
    """Verify the API key when authentication is enabled.

    Returns:
        The validated API key, or None when auth is disabled.

    Raises:
        HTTPException: 401 if the key is missing, 403 if it does not match.
    """
    if not settings.auth_enabled:
        return None

    if api_key is None:
        logger.warning(f"Missing API key for {request.method} {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, settings.api_key):
        logger.warning(f"Invalid API key for {request.method} {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key

