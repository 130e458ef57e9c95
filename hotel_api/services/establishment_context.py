"""
Per-request establishment scope.

A context is built once per request from the caller's identity and passed
explicitly into every service call. It never raises: it answers questions
(can this caller see that resource?) and rewrites filters; services decide
which errors to raise.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

log = logging.getLogger(__name__)

# roles that see every establishment
GLOBAL_ROLES = frozenset({"root", "super_admin", "admin"})


def _est_of(resource) -> Any:
    if resource is None:
        return None
    if isinstance(resource, Mapping):
        return resource.get("establishment_id")
    return getattr(resource, "establishment_id", None)


def _same_id(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


class EstablishmentServiceContext:
    def __init__(self, user_id, role: str, establishment_id=None):
        self._user_id = user_id
        self._role = role
        self._establishment_id = establishment_id

    def __repr__(self) -> str:
        return (
            f"<EstablishmentServiceContext user={self._user_id!r} role={self._role!r} "
            f"establishment={self._establishment_id!r}>"
        )

    # ---------- identity ----------

    def get_user_id(self):
        return self._user_id

    def get_role(self) -> str:
        return self._role

    def get_establishment_id(self):
        return self._establishment_id

    def can_access_all(self) -> bool:
        return self._role in GLOBAL_ROLES

    # ---------- scoping ----------

    def apply_filter(self, base_filter: Mapping | None = None) -> dict:
        """
        Return a copy of `base_filter` restricted to the caller's establishment.
        Global callers get the filter back unchanged.
        Usable directly with `Model.query.filter_by(**ctx.apply_filter({...}))`.
        """
        out = dict(base_filter or {})
        if self.can_access_all():
            return out
        out["establishment_id"] = self._establishment_id
        return out

    def validate_access(self, resource, resource_type: str) -> bool:
        """Scoped callers are denied any resource without an establishment, even when they have none themselves."""
        if self.can_access_all():
            return True
        resource_est = _est_of(resource)
        if resource_est is None:
            log.warning("Resource %s has no establishment_id", resource_type)
            return False
        return _same_id(resource_est, self._establishment_id)

    def validate_relationship(
        self, parent, child, relationship_name: str = "resource relationship"
    ) -> Tuple[bool, Optional[str]]:
        """Both sides of a relationship must carry the same establishment id."""
        parent_est = _est_of(parent)
        child_est = _est_of(child)
        if parent_est is None:
            return False, f"Parent resource in {relationship_name} has no establishment_id"
        if child_est is None:
            return False, f"Child resource in {relationship_name} has no establishment_id"
        if not _same_id(parent_est, child_est):
            return False, (
                f"Cross-establishment relationship detected in {relationship_name}: "
                f"parent ({parent_est}) != child ({child_est})"
            )
        return True, None

    # ---------- factories ----------

    @classmethod
    def from_user(cls, user) -> "EstablishmentServiceContext":
        """Accepts a User row or a mapping with user_id / role / establishment_id."""
        if isinstance(user, Mapping):
            return cls(user.get("user_id"), user.get("role"), user.get("establishment_id"))
        return cls(user.id, user.role, user.establishment_id)
