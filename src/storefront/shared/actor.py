"""The trusted caller identity handed in by the identity provider."""

from dataclasses import dataclass
from enum import Enum


class Role(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role = Role.CUSTOMER

    @classmethod
    def customer(cls, user_id: str) -> "Actor":
        return cls(id=str(user_id), role=Role.CUSTOMER)

    @classmethod
    def admin(cls, user_id: str) -> "Actor":
        return cls(id=str(user_id), role=Role.ADMIN)

    @classmethod
    def system(cls, name: str = "system") -> "Actor":
        return cls(id=name, role=Role.SYSTEM)

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SYSTEM)

    def __str__(self) -> str:
        return f"{self.role.value}:{self.id}"
