from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping, Optional

from .errors import PermissionDeniedError

ADMIN_ROLE = "admin"


class Permission(StrEnum):
    READ = "read"
    WRITE = "write"
    EDIT = "edit"
    DELETE = "delete"
    ALL = "all"


def _normalize_pages(raw: Any) -> frozenset[str]:
    # Stored either as a JSON list or a comma-separated string.
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        return frozenset(p.strip() for p in raw.split(",") if p.strip())
    return frozenset(str(p) for p in raw)


@dataclass(frozen=True)
class ActorContext:
    """Who is acting and what they may access, resolved once per request."""

    user_id: int
    role: Optional[str]
    accessible_pages: frozenset[str] = frozenset()
    permissions: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == ADMIN_ROLE

    def has_page(self, page: str) -> bool:
        return self.is_admin or page in self.accessible_pages

    def has_permission(self, page: str, permission: Permission) -> bool:
        if self.is_admin:
            return True
        granted = self.permissions.get(page)
        return granted == Permission.ALL or granted == permission

    def require(self, page: str, permission: Permission) -> None:
        if not self.has_permission(page, permission):
            raise PermissionDeniedError(f"{permission} on {page} not granted")

    @classmethod
    def from_role(
        cls,
        *,
        user_id: int,
        role: Optional[str],
        accessible_pages: Any = None,
        permissions: Optional[Mapping[str, Any]] = None,
    ) -> "ActorContext":
        return cls(
            user_id=user_id,
            role=role,
            accessible_pages=_normalize_pages(accessible_pages),
            permissions={str(k): str(v).lower() for k, v in (permissions or {}).items()},
        )
