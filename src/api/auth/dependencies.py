"""
FastAPI dependencies for authentication.
Sync triggers are guarded by a shared secret passed as a Bearer token.
"""
import hmac
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import config

# auto_error=False so a missing header yields 401 (not FastAPI's default 403)
security = HTTPBearer(auto_error=False)


async def verify_sync_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> None:
    """
    FastAPI dependency that checks the Bearer token against SYNC_SECRET.
    Use this on every route that triggers a sync:

        @router.post("/run-all", dependencies=[Depends(verify_sync_token)])
        async def run_all():
            ...
    """
    secret = config.SYNC_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SYNC_SECRET is not configured",
        )

    token = credentials.credentials if credentials else ''
    if not token or not hmac.compare_digest(token.encode('utf-8'), secret.encode('utf-8')):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing sync token",
            headers={"WWW-Authenticate": "Bearer"},
        )
