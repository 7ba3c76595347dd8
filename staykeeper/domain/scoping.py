# staykeeper/domain/scoping.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, TypeVar

from sqlalchemy import false

T = TypeVar("T")


class PropertyMode(str, Enum):
    PROPERTY = "property"
    ALL = "all"
    UNASSIGNED = "unassigned"

    @classmethod
    def parse(cls, raw: Optional[str], default: "PropertyMode | None" = None) -> "PropertyMode":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            if default is not None:
                return default
            raise


@dataclass(frozen=True)
class PropertyScope:
    """
    The one visibility rule shared by every property-scoped entity:

      all        -> every row
      unassigned -> rows whose property_id is null
      property   -> rows whose property_id equals the selected property
                    (nothing at all when no property is selected)
    """

    mode: PropertyMode = PropertyMode.ALL
    property_id: Optional[str] = None

    @classmethod
    def all(cls) -> "PropertyScope":
        return cls(PropertyMode.ALL, None)

    @classmethod
    def unassigned(cls) -> "PropertyScope":
        return cls(PropertyMode.UNASSIGNED, None)

    @classmethod
    def for_property(cls, property_id: Optional[str]) -> "PropertyScope":
        return cls(PropertyMode.PROPERTY, property_id)

    @classmethod
    def from_params(cls, mode: Optional[str], property_id: Optional[str]) -> "PropertyScope":
        m = PropertyMode.parse(mode, default=PropertyMode.ALL if not property_id else PropertyMode.PROPERTY)
        if m == PropertyMode.PROPERTY:
            return cls.for_property(property_id or None)
        return cls(m, None)

    @property
    def is_empty(self) -> bool:
        return self.mode == PropertyMode.PROPERTY and not self.property_id

    def matches(self, property_id: Optional[str]) -> bool:
        if self.mode == PropertyMode.ALL:
            return True
        if self.mode == PropertyMode.UNASSIGNED:
            return property_id is None
        if self.is_empty:
            return False
        return property_id == self.property_id

    def as_filter(self) -> Optional[dict[str, Any]]:
        """
        Equality filter for EntityStore.list; None means no filter.
        An empty property scope has no filter form, check is_empty first.
        """
        if self.mode == PropertyMode.ALL:
            return None
        if self.mode == PropertyMode.UNASSIGNED:
            return {"property_id": None}
        return {"property_id": self.property_id}


def apply_scope(rows: Iterable[T], scope: PropertyScope, key: str = "property_id") -> list[T]:
    out: list[T] = []
    for r in rows:
        pid = r.get(key) if isinstance(r, Mapping) else getattr(r, key, None)
        if scope.matches(pid):
            out.append(r)
    return out


def scope_clause(model: Any, scope: PropertyScope):
    """The same rule as a SQLAlchemy WHERE clause (None when nothing is filtered)."""
    col = model.property_id
    if scope.mode == PropertyMode.ALL:
        return None
    if scope.mode == PropertyMode.UNASSIGNED:
        return col.is_(None)
    if scope.is_empty:
        return false()
    return col == scope.property_id
