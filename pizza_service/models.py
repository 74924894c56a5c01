from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    DINER = "diner"
    FRANCHISEE = "franchisee"
    ADMIN = "admin"


@dataclass(frozen=True)
class RoleAssignment:
    """A role held by a user.

    Only FRANCHISEE is scoped: `object_id` is the franchise it administers.
    DINER and ADMIN never carry an object id.
    """

    role: Role
    object_id: Optional[int] = None

    def __post_init__(self) -> None:
        if self.role is Role.FRANCHISEE:
            if self.object_id is None:
                raise ValueError("franchisee_role_requires_franchise")
        elif self.object_id is not None:
            raise ValueError(f"{self.role.value}_role_is_unscoped")

    @classmethod
    def diner(cls) -> "RoleAssignment":
        return cls(Role.DINER)

    @classmethod
    def admin(cls) -> "RoleAssignment":
        return cls(Role.ADMIN)

    @classmethod
    def franchisee(cls, franchise_id: int) -> "RoleAssignment":
        return cls(Role.FRANCHISEE, int(franchise_id))

    @classmethod
    def from_row(cls, row: Any) -> "RoleAssignment":
        role = Role(str(row["role"]))
        object_id = row["object_id"]
        if role is Role.FRANCHISEE:
            return cls.franchisee(int(object_id))
        return cls(role)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"role": self.role.value}
        if self.object_id is not None:
            d["object_id"] = self.object_id
        return d


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str
    roles: List[RoleAssignment] = field(default_factory=list)

    def is_role(self, role: Role) -> bool:
        return any(r.role is role for r in self.roles)

    def franchise_ids(self) -> List[int]:
        return [int(r.object_id) for r in self.roles if r.role is Role.FRANCHISEE and r.object_id is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "roles": [r.to_dict() for r in self.roles],
        }
