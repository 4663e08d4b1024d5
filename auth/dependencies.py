"""
auth/dependencies.py -- FastAPI Depends() helpers for bearer-token authentication.

Requests authenticate with an "Authorization: Bearer <token>" header. The
token must carry a valid signature and an unexpired exp claim, and its
subject must still be an active user in the directory -- deactivating an
account takes effect on the next request even though the token itself is
never revoked.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.errors import DirectoryError
from auth.models import User
from auth.service import AuthService
from auth.store import UserStore


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def try_get_current_user(request: Request) -> User | None:
    """Authenticate the request via its Bearer header.

    Returns the active User on success, None on any token failure.
    Raises HTTP 503 if the directory cannot be read -- that is not the
    caller's fault and must not look like a bad token.
    """
    token = _bearer_token(request)
    if not token:
        return None

    auth_service: AuthService = request.app.state.auth_service
    subject = auth_service.tokens.subject_of(token)
    if subject is None:
        return None

    user_store: UserStore = request.app.state.user_store
    try:
        user = user_store.find_by_username(subject)
    except DirectoryError as exc:
        raise HTTPException(
            status_code=503,
            detail={"code": "service_unavailable", "message": "Authentication service temporarily unavailable."},
        ) from exc
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
