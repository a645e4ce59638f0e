"""
SneakerChain Access Collaborators

The ownership core only asks two questions of the outside world: "is the
system paused?" and "does this caller hold an admin role?". Both are
expressed as protocols so that any role system can be plugged in.

RoleBook is the reference implementation with three roles:

    owner     may assign roles, pause and unpause
    admin     may mint, may pause
    operator  may pause

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Dict, Optional, Protocol, runtime_checkable

from sneakerchain.errors import InvalidDestination, Unauthorized
from sneakerchain.hardening import ZERO_ADDRESS, normalize_address
from sneakerchain.observability import RegistryLayer, get_logger

logger = get_logger("role_book", RegistryLayer.ACCESS)


@runtime_checkable
class PauseGate(Protocol):
    def is_paused(self) -> bool: ...


@runtime_checkable
class AdminAuthority(Protocol):
    def has_admin_role(self, caller: str) -> bool: ...


class AlwaysOpen:
    """Never paused, no admins. Default when no authority is supplied."""

    def is_paused(self) -> bool:
        return False

    def has_admin_role(self, caller: str) -> bool:
        return False


class Role(Enum):
    OWNER = "owner"
    ADMIN = "admin"
    OPERATOR = "operator"


ADMIN_ROLES = frozenset({Role.OWNER, Role.ADMIN})


class RoleBook:
    """Role holders and the pause flag."""

    def __init__(self, owner: str, admin: Optional[str] = None, operator: Optional[str] = None):
        self._lock = threading.RLock()
        self._holders: Dict[Role, str] = {Role.OWNER: self._checked(owner)}
        if admin:
            self._holders[Role.ADMIN] = self._checked(admin)
        if operator:
            self._holders[Role.OPERATOR] = self._checked(operator)
        self._paused = False

    @staticmethod
    def _checked(address: str) -> str:
        address = normalize_address(address, "role_holder")
        if address == ZERO_ADDRESS:
            raise InvalidDestination("role holder cannot be the null address")
        return address

    def holder(self, role: Role) -> str:
        with self._lock:
            return self._holders.get(role, ZERO_ADDRESS)

    def roles_of(self, address: str) -> frozenset:
        with self._lock:
            return frozenset(r for r, a in self._holders.items() if a == address)

    def _require(self, caller: str, allowed: frozenset, action: str) -> None:
        if not self.roles_of(caller) & allowed:
            logger.warning("Role check failed", error_code=Unauthorized.error_code, caller=caller, action=action)
            raise Unauthorized(f"{caller} may not {action}")

    def set_role(self, caller: str, role: Role, address: str) -> None:
        caller = normalize_address(caller, "caller")
        with self._lock:
            self._require(caller, frozenset({Role.OWNER}), f"assign {role.value}")
            self._holders[role] = self._checked(address)
        logger.info("Role assigned", role=role.value, address=address)

    def pause(self, caller: str) -> None:
        caller = normalize_address(caller, "caller")
        with self._lock:
            self._require(caller, frozenset(Role), "pause")
            self._paused = True
        logger.info("Registry paused", caller=caller)

    def unpause(self, caller: str) -> None:
        caller = normalize_address(caller, "caller")
        with self._lock:
            self._require(caller, frozenset({Role.OWNER}), "unpause")
            self._paused = False
        logger.info("Registry unpaused", caller=caller)

    # PauseGate / AdminAuthority

    def is_paused(self) -> bool:
        with self._lock:
            return self._paused

    def has_admin_role(self, caller: str) -> bool:
        return bool(self.roles_of(caller) & ADMIN_ROLES)

    def to_dict(self) -> Dict[str, object]:
        with self._lock:
            return {
                "roles": {r.value: a for r, a in self._holders.items()},
                "paused": self._paused,
            }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "RoleBook":
        roles = dict(data.get("roles") or {})  # type: ignore[arg-type]
        book = cls(
            owner=roles["owner"],
            admin=roles.get("admin"),
            operator=roles.get("operator"),
        )
        book._paused = bool(data.get("paused", False))
        return book
