"""
Request-scoped operator identity. Built once per request at the session boundary.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import uuid


class OperatorRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def is_admin_tier(self) -> bool:
        return self in (OperatorRole.ADMIN, OperatorRole.SUPER_ADMIN)

    @classmethod
    def from_role_name(cls, role_name: Optional[str]) -> "OperatorRole":
        """
        Normalize a directory role name ("Super Admin", "admin", "SUPER_ADMIN", ...).

        Only the identity/directory boundary calls this; the chat core compares
        enum members, never strings. Unknown or empty names fall back to member.
        """
        if not role_name:
            return cls.MEMBER
        key = role_name.strip().lower().replace("-", " ").replace("_", " ")
        key = "_".join(key.split())
        try:
            return cls(key)
        except ValueError:
            return cls.MEMBER


@dataclass(frozen=True)
class OperatorContext:
    operator_id: uuid.UUID
    role: OperatorRole

    @property
    def is_admin_tier(self) -> bool:
        return self.role.is_admin_tier

    @property
    def is_super_admin(self) -> bool:
        return self.role is OperatorRole.SUPER_ADMIN
