from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from .entity_store import EntityStore


@dataclass(frozen=True)
class SessionUser:
    """The signed-in user as the client sees it."""

    user_id: str
    email: str = ""


class IdentityResolver(Protocol):
    def profile_id(self, user: SessionUser) -> Optional[str]: ...


class StaticIdentity:
    def __init__(self, profile_id: Optional[str]) -> None:
        self._profile_id = profile_id

    def profile_id(self, user: SessionUser) -> Optional[str]:
        return self._profile_id


class StoreIdentity:
    """Looks the profile up in app_users by email, falling back to the user id."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def profile_id(self, user: SessionUser) -> Optional[str]:
        if user.email:
            rows = self.store.list("app_users", {"email": user.email.strip().lower()}, limit=1)
            if rows:
                return str(rows[0]["id"])
        rows = self.store.list("app_users", {"id": user.user_id}, limit=1)
        return str(rows[0]["id"]) if rows else None
