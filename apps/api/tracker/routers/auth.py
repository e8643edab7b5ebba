"""Authentication router - registration, password login and session cookies."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from tracker.core.config import settings
from tracker.core.deps import COOKIE_NAME, get_current_session, get_db, require_csrf_header
from tracker.core.rate_limit import limiter
from tracker.schemas.auth import (
    LoginRequest,
    MeResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserSession,
)
from tracker.services import auth_service, user_service

router = APIRouter()

REFRESH_COOKIE_NAME = "tracker_refresh"


def _set_session_cookies(response: Response, tokens: TokenResponse) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=tokens.access_token,
        max_age=settings.JWT_EXPIRES_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=tokens.refresh_token,
        max_age=settings.REFRESH_EXPIRES_DAYS * 86400,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/api/auth",
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
@limiter.limit(f"{settings.RATE_LIMIT_AUTH}/minute")
def register(
    request: Request,
    response: Response,
    data: RegisterRequest,
    db: Session = Depends(get_db),
):
    """Create a church and its owner account, and sign the owner in."""
    try:
        user = auth_service.register(db, data)
    except user_service.EmailTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    tokens = auth_service.issue_tokens(user)
    _set_session_cookies(response, tokens)
    return tokens


@router.post("/login", response_model=TokenResponse)
@limiter.limit(f"{settings.RATE_LIMIT_AUTH}/minute")
def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: Session = Depends(get_db),
):
    try:
        user = auth_service.authenticate(db, data.email, data.password)
    except auth_service.InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e))
    tokens = auth_service.issue_tokens(user)
    _set_session_cookies(response, tokens)
    return tokens


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit(f"{settings.RATE_LIMIT_AUTH * 6}/minute")
def refresh(
    request: Request,
    response: Response,
    data: RefreshRequest | None = None,
    db: Session = Depends(get_db),
):
    """Rotate tokens using the refresh token from the body or the refresh cookie."""
    token = (data.refresh_token if data else None) or request.cookies.get(REFRESH_COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Missing refresh token")
    try:
        tokens = auth_service.refresh(db, token)
    except auth_service.AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    _set_session_cookies(response, tokens)
    return tokens


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(
    response: Response,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Revoke every token issued to the caller and clear the cookies."""
    user_service.revoke_all_sessions(db, session.user_id)
    response.delete_cookie(COOKIE_NAME, path="/")
    response.delete_cookie(REFRESH_COOKIE_NAME, path="/api/auth")
    return {"status": "logged_out"}


@router.get("/me", response_model=MeResponse)
def me(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return auth_service.build_me(db, session)
