"""Caller identity threaded through every timetable write."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .errors import AuthorizationError

ADMIN_ROLES = ("superadmin", "admin")


@dataclass(frozen=True)
class Identity:
    """Tenant and issuer of a request.

    ``school_code`` isolates one school's rows from another's in the shared
    tables, ``created_by`` is stamped on every row the caller writes.
    """

    school_code: str
    created_by: str
    role: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Identity":
        school_code = str(claims.get("school_code") or "").strip()
        created_by = str(claims.get("created_by") or "").strip()
        if not school_code or not created_by:
            raise AuthorizationError("Sign in with a school account to continue.")
        role = claims.get("role")
        return cls(school_code=school_code, created_by=created_by, role=role)

    def require_role(self, *roles: str) -> "Identity":
        allowed = roles or ADMIN_ROLES
        if self.role not in allowed:
            raise AuthorizationError("Only school administrators can change the timetable.")
        return self
