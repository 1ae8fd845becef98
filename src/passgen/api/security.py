# Passgen: KV Service Security - Shared token check
#
# When a service token is configured, every KV route requires it in the
# X-Session-Token header. Without one the service is open, which is only
# appropriate when bound to localhost.

import os
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

_SERVICE_TOKEN: Optional[str] = None


def configure_service_token(token: Optional[str] = None) -> Optional[str]:
    """
    Set the token required by the KV routes.

    Args:
        token: Explicit token; defaults to PASSGEN_API_TOKEN (None disables
               the check).

    Returns:
        The active token.
    """
    global _SERVICE_TOKEN
    _SERVICE_TOKEN = token if token is not None else os.environ.get("PASSGEN_API_TOKEN")
    return _SERVICE_TOKEN


async def verify_service_token(x_session_token: str = Header(None)) -> Optional[str]:
    """
    FastAPI dependency to verify the service token.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not _SERVICE_TOKEN:
        return None

    if x_session_token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Session-Token header"
        )

    # Constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(x_session_token, _SERVICE_TOKEN):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token"
        )

    return x_session_token
