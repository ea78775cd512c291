"""
Request authentication. Token issuance lives in the identity service; here we only
resolve a bearer token (Authorization header) or "token" cookie to a user id.
"""
from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from dictation.store import MemoryStore, get_store


def token_from_request(request: Request) -> str | None:
    auth = request.headers.get("authorization") or ""
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    cookie = request.cookies.get("token")
    return cookie.strip() if cookie else None


def get_current_user(request: Request, store: MemoryStore = Depends(get_store)) -> str:
    """FastAPI dependency: user id for the request, 401 when missing or unknown."""
    token = token_from_request(request)
    user_id = store.user_for_token(token) if token else None
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id
