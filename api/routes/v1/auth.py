"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login     -- password login; returns a bearer token
  POST /api/v1/auth/validate  -- check a token against a username; {valid: bool}
  GET  /api/v1/auth/me        -- current user info (requires Bearer token)

Security:
  [H2] POST /login is rate-limited to 10 requests/minute per IP.
  [C1] CredentialVerifier provides timing equalization -- always go through
       AuthService.login(), never inline a lookup + hash check here.
  [M5] Cache-Control: no-store on login responses.
  Every AuthError produces the same 401 body, so the response never tells an
  unknown username from a wrong password or a disabled account.

No `from __future__ import annotations` here: the slowapi wrapper lives in
another module, so FastAPI must see real annotation objects, not strings.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import (
    ErrorDetail,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    ValidateRequest,
    ValidateResponse,
)
from auth.dependencies import get_auth_service, get_current_user
from auth.errors import AuthError, ServiceUnavailable
from auth.models import User
from auth.service import AuthService

# Auth policy:
# - POST /api/v1/auth/login:    public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/validate: public -- answers only valid/invalid
# - GET  /api/v1/auth/me:       requires auth (get_current_user)
router = APIRouter()


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(exclude_none=True),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(LOGIN_RATE_LIMIT)  # [H2] brute-force mitigation -- must sit BELOW @router so the wrapper is registered
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a signed token.

    Returns the same generic error for every rejection kind ("invalid_credentials")
    to avoid leaking username existence information. A directory outage is a
    503 so clients know to retry rather than re-prompt for a password.
    """
    auth_service: AuthService = request.app.state.auth_service
    try:
        issued = auth_service.login(body.username, body.password)
    except AuthError:
        return _error(401, "invalid_credentials", "Invalid username or password.")
    except ServiceUnavailable:
        return _error(503, "service_unavailable", "Authentication service temporarily unavailable.")

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=issued.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=issued.expires_in,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/validate", response_model=ValidateResponse)
def validate_token(
    body: ValidateRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ValidateResponse:
    """Return whether token is authentic, unexpired and issued to username.

    The reason for a False answer (bad signature, expiry, wrong subject,
    garbage input) is deliberately not reported.
    """
    return ValidateResponse(valid=auth_service.validate(body.token, body.username))


@router.get("/auth/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(
        user_id=current_user.id,
        username=current_user.username,
        is_active=current_user.is_active,
    )
