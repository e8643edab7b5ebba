"""User service - staff accounts and session revocation."""

from uuid import UUID

from sqlalchemy.orm import Session

from tracker.core.permissions import Permission as P, ensure_permission
from tracker.core.security import hash_password
from tracker.db.enums import Role
from tracker.db.models import User
from tracker.schemas.auth import UserCreate, UserSession, UserUpdate


class UserServiceError(ValueError):
    pass


class UserNotFoundError(UserServiceError):
    pass


class EmailTakenError(UserServiceError):
    def __init__(self):
        super().__init__("An account with this email already exists")


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case-insensitive)."""
    return db.query(User).filter(User.email == email.strip().lower()).first()


def revoke_all_sessions(db: Session, user_id: UUID) -> bool:
    """
    Revoke all sessions for a user by bumping token_version.

    Returns:
        True if user found and sessions revoked, False if user not found
    """
    user = get_user_by_id(db, user_id)
    if not user:
        return False
    user.token_version += 1
    db.commit()
    return True


def list_users(db: Session, church_id: UUID) -> list[User]:
    return (
        db.query(User)
        .filter(User.church_id == church_id)
        .order_by(User.first_name, User.last_name)
        .all()
    )


def _check_role_grant(actor: UserSession, role: Role) -> None:
    """Only a SUPER_ADMIN may hand out SUPER_ADMIN."""
    if role == Role.SUPER_ADMIN and actor.role != Role.SUPER_ADMIN:
        raise UserServiceError("Only a super admin can grant the super admin role")


def create_user(db: Session, actor: UserSession, data: UserCreate) -> User:
    ensure_permission(actor.role, P.USER_CREATE)
    if data.role != Role.VOLUNTEER:
        ensure_permission(actor.role, P.USER_MANAGE_ROLES)
    _check_role_grant(actor, data.role)
    if get_user_by_email(db, data.email):
        raise EmailTakenError()

    user = User(
        church_id=actor.church_id,
        email=data.email.strip().lower(),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        role=data.role.value,
        password_hash=hash_password(data.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, actor: UserSession, user_id: UUID, data: UserUpdate) -> User:
    """
    Update a staff account in the caller's church.

    Role changes need user:manage_roles; deactivating an account also
    revokes its sessions. Callers cannot change their own role or disable
    themselves.
    """
    ensure_permission(actor.role, P.USER_UPDATE)
    user = (
        db.query(User)
        .filter(User.church_id == actor.church_id, User.id == user_id)
        .first()
    )
    if not user:
        raise UserNotFoundError("User not found")

    changes = data.model_dump(exclude_unset=True)
    if changes.get("role") is not None:
        ensure_permission(actor.role, P.USER_MANAGE_ROLES)
        if user.id == actor.user_id:
            raise UserServiceError("You cannot change your own role")
        _check_role_grant(actor, data.role)
        user.role = data.role.value
    if changes.get("is_active") is not None:
        if user.id == actor.user_id and not data.is_active:
            raise UserServiceError("You cannot disable your own account")
        if user.is_active and not data.is_active:
            user.token_version += 1
        user.is_active = data.is_active
    for key in ("first_name", "last_name", "phone"):
        if key in changes and (changes[key] is not None or key == "phone"):
            setattr(user, key, changes[key])

    db.commit()
    db.refresh(user)
    return user
