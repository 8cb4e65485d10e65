"""
API key authentication for the /api/v1 routes.

Enforced only when REQUIRE_API_KEY is set and API_KEYS lists at least one
key; otherwise every request is let through as "dev".
"""

import secrets
from typing import Iterable, Optional

from fastapi import Depends, Header, HTTPException, Query


def get_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    authorization: Optional[str] = Header(None),
    api_key_param: Optional[str] = Query(None, alias="apiKey", include_in_schema=False)
) -> Optional[str]:
    """Key from X-API-Key, then a Bearer token, then the apiKey query parameter."""
    if x_api_key:
        return x_api_key

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()

    return api_key_param or None


def _matches_any(api_key: str, valid_keys: Iterable[str]) -> bool:
    # Compare against every key so timing does not reveal which one matched
    matched = False
    for valid in valid_keys:
        matched |= secrets.compare_digest(api_key.encode(), valid.encode())
    return matched


async def verify_api_key(api_key: Optional[str] = Depends(get_api_key)) -> str:
    """Returns the caller's key, or "dev" when authentication is off."""
    from coursework.config import config

    if not config.auth_required:
        return "dev"

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="API key required. Provide X-API-Key header, Bearer token or apiKey query parameter.",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if not _matches_any(api_key, config.api_keys_list):
        raise HTTPException(status_code=403, detail="Invalid API key")

    return api_key


# Router-level dependency for the workflow routes
require_auth = Depends(verify_api_key)
