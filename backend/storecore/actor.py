# Overview: Authenticated actor identity supplied by the external auth layer.

from __future__ import annotations

from dataclasses import dataclass

ROLE_MANAGER = "manager"
ROLE_CASHIER = "cashier"
ROLES = (ROLE_MANAGER, ROLE_CASHIER)


@dataclass(frozen=True)
class Actor:
    actor_id: int
    role: str

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER

    @property
    def is_cashier(self) -> bool:
        return self.role == ROLE_CASHIER
