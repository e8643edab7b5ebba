"""Authentication service - church registration, password login, token issue."""

import logging
import re
import secrets
from uuid import UUID

import jwt
from sqlalchemy.orm import Session

from tracker.core.permissions import get_role_permissions
from tracker.core.security import (
    REFRESH_TOKEN_TYPE,
    create_refresh_token,
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)
from tracker.db.enums import Role
from tracker.db.models import Church, User
from tracker.schemas.auth import MeResponse, RegisterRequest, TokenResponse, UserSession
from tracker.services import pipeline_service, user_service

logger = logging.getLogger(__name__)

# Dummy hash so unknown emails cost the same as a wrong password
_DUMMY_HASH = hash_password(secrets.token_hex(8))


class AuthError(ValueError):
    pass


class InvalidCredentialsError(AuthError):
    def __init__(self):
        super().__init__("Invalid email or password")


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:80] or "church"


def _unique_slug(db: Session, name: str) -> str:
    base = slugify(name)
    slug = base
    while db.query(Church.id).filter(Church.slug == slug).first():
        slug = f"{base}-{secrets.token_hex(3)}"
    return slug


def create_church(db: Session, name: str, **fields) -> Church:
    """Create a church with both default pathways seeded. Flushes, does not commit."""
    church = Church(name=name, slug=_unique_slug(db, name), **fields)
    db.add(church)
    db.flush()
    pipeline_service.seed_default_pathways(db, church.id)
    return church


def register(db: Session, data: RegisterRequest) -> User:
    """
    Create a church and its first user (SUPER_ADMIN).

    Raises:
        EmailTakenError: email already belongs to a user
    """
    if user_service.get_user_by_email(db, data.email):
        raise user_service.EmailTakenError()

    church = create_church(db, data.church_name, email=data.email.lower())
    user = User(
        church_id=church.id,
        email=data.email.strip().lower(),
        first_name=data.first_name,
        last_name=data.last_name,
        role=Role.SUPER_ADMIN.value,
        password_hash=hash_password(data.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered church {church.id} with owner {user.id}")
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = user_service.get_user_by_email(db, email)
    if not user:
        verify_password(password, _DUMMY_HASH)
        raise InvalidCredentialsError()
    if not verify_password(password, user.password_hash) or not user.is_active:
        raise InvalidCredentialsError()
    return user


def issue_tokens(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_session_token(user.id, user.church_id, user.role, user.token_version),
        refresh_token=create_refresh_token(user.id, user.token_version),
    )


def refresh(db: Session, refresh_token: str) -> TokenResponse:
    """Exchange a refresh token for a new pair. Revoked or disabled users are rejected."""
    try:
        payload = decode_session_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
    except jwt.InvalidTokenError as e:
        raise AuthError("Invalid refresh token") from e

    user = user_service.get_user_by_id(db, UUID(payload["sub"]))
    if not user or not user.is_active:
        raise AuthError("Invalid refresh token")
    if user.token_version != payload.get("token_version"):
        raise AuthError("Session revoked")
    return issue_tokens(user)


def build_me(db: Session, session: UserSession) -> MeResponse:
    church = db.query(Church).filter(Church.id == session.church_id).first()
    return MeResponse(
        user_id=session.user_id,
        email=session.email,
        display_name=session.display_name,
        role=session.role,
        church_id=church.id,
        church_name=church.name,
        church_slug=church.slug,
        church_timezone=church.timezone,
        permissions=sorted(p.value for p in get_role_permissions(session.role)),
    )
