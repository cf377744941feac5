from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.constants import ROLE_PERMISSIONS
from app.extensions import db
from app.models import Permission, Role, User
from app.security.password import hash_password, verify_password


def find_user_by_email(email: str) -> User | None:
    stmt = (
        select(User)
        .where(User.email == email.lower().strip())
        .options(selectinload(User.roles).selectinload(Role.permissions))
    )
    return db.session.execute(stmt).scalar_one_or_none()


def find_user_by_id(user_id: int) -> User | None:
    stmt = (
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.roles).selectinload(Role.permissions))
    )
    return db.session.execute(stmt).scalar_one_or_none()


def authenticate_user(email: str, password: str) -> User | None:
    user = find_user_by_email(email)
    if not user or not user.is_active:
        return None

    if not verify_password(user.password_hash, password):
        return None

    user.last_login_at = datetime.now(timezone.utc)
    db.session.commit()
    return user


def any_users_exist() -> bool:
    return db.session.scalar(select(User.id).limit(1)) is not None


def find_role_by_name(name: str) -> Role | None:
    stmt = select(Role).where(Role.name == name)
    return db.session.execute(stmt).scalar_one_or_none()


def create_user(email: str, password: str, name: str = "", roles: list[Role] | None = None) -> User:
    user = User(
        email=email.lower().strip(),
        name=name.strip(),
        password_hash=hash_password(password),
        is_active=True,
    )
    if roles:
        user.roles.extend(roles)

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise

    db.session.refresh(user)
    return user


def assign_roles_to_user(user: User, roles: list[Role]) -> User:
    user.roles = roles
    db.session.commit()
    db.session.refresh(user)
    return user


def list_users() -> list[User]:
    stmt = select(User).options(selectinload(User.roles)).order_by(User.id)
    return list(db.session.execute(stmt).scalars().all())


def seed_roles_and_permissions() -> tuple[int, int]:
    """Create missing roles and permissions. Returns (roles_created, permissions_created)."""
    permissions = {permission.code: permission for permission in db.session.scalars(select(Permission))}
    permissions_created = 0
    for codes in ROLE_PERMISSIONS.values():
        for code in codes:
            if code not in permissions:
                permissions[code] = Permission(code=code)
                db.session.add(permissions[code])
                permissions_created += 1

    roles_created = 0
    for role_name, codes in ROLE_PERMISSIONS.items():
        role = find_role_by_name(role_name)
        if role is None:
            role = Role(name=role_name)
            db.session.add(role)
            roles_created += 1
        granted = {permission.code for permission in role.permissions}
        role.permissions.extend(permissions[code] for code in codes if code not in granted)

    db.session.commit()
    return roles_created, permissions_created


def build_auth_claims(user: User) -> dict[str, list[str]]:
    roles = sorted({role.name for role in user.roles})
    permissions = sorted(
        {
            permission.code
            for role in user.roles
            for permission in role.permissions
        }
    )
    return {"roles": roles, "permissions": permissions}
