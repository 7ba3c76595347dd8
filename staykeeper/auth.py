# staykeeper/auth.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import AppUser, UserRole

ROLE_ORDER = {"cleaner": 1, "inspector": 1, "manager": 2, "owner": 3}
ROLES = tuple(ROLE_ORDER)


@dataclass(frozen=True)
class Principal:
    user_id: str
    email: str
    roles: tuple[str, ...] = field(default_factory=tuple)
    full_name: str = ""

    @property
    def role(self) -> str:
        """Highest role held (owner > manager > inspector = cleaner)."""
        if not self.roles:
            return ""
        return max(self.roles, key=lambda r: ROLE_ORDER.get(r, 0))

    def has_role(self, min_role: str) -> bool:
        return ROLE_ORDER.get(self.role, 0) >= ROLE_ORDER.get(min_role, 999)

    @property
    def sees_all_properties(self) -> bool:
        return self.has_role("manager")


def roles_for_user(db: Session, user_id: str) -> tuple[str, ...]:
    rows = db.scalars(select(UserRole.role).where(UserRole.user_id == user_id).order_by(UserRole.role)).all()
    return tuple(str(r) for r in rows)


def principal_for_user(db: Session, user: AppUser) -> Principal:
    return Principal(
        user_id=str(user.id),
        email=str(user.email),
        roles=roles_for_user(db, str(user.id)),
        full_name=str(user.full_name or ""),
    )


def _require_role(principal: Principal, min_role: str) -> None:
    if not principal.has_role(min_role):
        raise HTTPException(status_code=403, detail=f"Requires role >= {min_role}")


def _provision(db: Session, email: str, role_hint: str) -> AppUser | None:
    user = db.scalar(select(AppUser).where(AppUser.email == email))
    if user is None and settings.dev_auto_provision:
        user = AppUser(email=email, full_name=email.split("@")[0], created_at=datetime.utcnow())
        db.add(user)
        db.flush()
        db.add(UserRole(user_id=user.id, role=role_hint if role_hint in ROLE_ORDER else "owner"))
        db.commit()
        db.refresh(user)
    return user


def get_principal(
    db: Session = Depends(get_db),
    x_user_email: Optional[str] = Header(default=None, alias="X-User-Email"),
    x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
) -> Principal:
    """
    Dev header identity. The hosting platform owns real sign-in; this
    service only needs to know who is asking and what they may see.

    Unknown emails are provisioned on first use with the hinted role
    (dev_auto_provision); known users keep the roles stored for them.
    """
    if settings.auth_mode != "dev":
        raise HTTPException(status_code=401, detail="Not authenticated")

    email = (x_user_email or "").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail="Missing X-User-Email for dev auth")

    role_hint = (x_user_role or "owner").strip().lower()
    user = _provision(db, email, role_hint)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User is deactivated")

    return principal_for_user(db, user)


def require_manager(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "manager")
    return p


def require_owner(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "owner")
    return p
