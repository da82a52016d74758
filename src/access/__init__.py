"""
Access module: caller roles and the capability gate for mutating calls.
"""

from .capabilities import AccessControl, Role, requires_role

__all__ = ["AccessControl", "Role", "requires_role"]
