# api_server/auth.py
import hmac
import os
from typing import Optional

from fastapi import Header, HTTPException, status

API_KEY_HEADER = "X-API-Key"


def get_api_key() -> Optional[str]:
    """Get the admin API key from the environment (FUNNELS_API_KEY, then API_KEY)."""
    return os.getenv("FUNNELS_API_KEY") or os.getenv("API_KEY")


def verify_api_key(api_key: Optional[str] = Header(None, alias=API_KEY_HEADER)) -> str:
    """
    Verify the admin API key sent in the request header.

    Raises HTTPException if key is missing or invalid.
    """
    expected_key = get_api_key()

    if not expected_key:
        # No key configured: development mode, every request is allowed
        return ""

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {API_KEY_HEADER} header",
        )

    if not hmac.compare_digest(api_key.encode(), expected_key.encode()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key
