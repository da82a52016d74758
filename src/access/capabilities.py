"""
Role-based capability checks for mutating calls.

Every mutating facade method is wrapped by ``requires_role``, which checks the
caller before the method body runs. A rejected call therefore never touches
entity state.
"""

from __future__ import annotations

import functools
import logging
import threading
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Set, TypeVar

from src.core.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., object])


class Role(str, Enum):
    """Capabilities a caller may hold."""

    REPORTER = "reporter"
    ADMIN = "admin"
    PARAMETER_UPDATER = "parameter_updater"


class AccessControl:
    """
    In-memory role registry.

    Admins may grant and revoke any role, including their own.
    """

    def __init__(self, grants: Optional[Dict[Role, Iterable[str]]] = None) -> None:
        self._members: Dict[Role, Set[str]] = {role: set() for role in Role}
        self._lock = threading.Lock()
        for role, callers in (grants or {}).items():
            self._members[Role(role)].update(callers)

    def has_role(self, caller: Optional[str], role: Role) -> bool:
        if not caller:
            return False
        with self._lock:
            return caller in self._members[role]

    def require(self, caller: Optional[str], role: Role) -> None:
        if not self.has_role(caller, role):
            logger.warning("Rejected %s call from %r", role.value, caller)
            raise AuthorizationError(caller, role.value)

    def members(self, role: Role) -> Set[str]:
        with self._lock:
            return set(self._members[role])

    def grant(self, caller: str, role: Role, member: str) -> None:
        self.require(caller, Role.ADMIN)
        with self._lock:
            self._members[role].add(member)
        logger.info("Granted %s to %s", role.value, member)

    def revoke(self, caller: str, role: Role, member: str) -> None:
        self.require(caller, Role.ADMIN)
        with self._lock:
            self._members[role].discard(member)
        logger.info("Revoked %s from %s", role.value, member)


def requires_role(role: Role) -> Callable[[F], F]:
    """
    Decorate a method whose first argument after ``self`` is the caller id.

    The owning object must expose an ``access`` attribute (AccessControl).
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self, caller, *args, **kwargs):
            self.access.require(caller, role)
            return func(self, caller, *args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
