"""
auth/permissions.py -- Static role -> permission / module tables and the Authorizer.

Each role row is an independent literal set. There is no inheritance between
tiers: "super" overlaps "admin" heavily but is not derived from it, and a new
permission must be added to every row that should carry it.

The tables are read-only (MappingProxyType over frozensets). Authorizer
validates them once at construction against the Role enumeration and refuses
to start if a role is missing or an unknown key is present.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from auth.models import Role, Session

logger = logging.getLogger("salesdesk.auth")

ROLE_PERMISSIONS: Mapping[Role, frozenset[str]] = MappingProxyType(
    {
        Role.admin: frozenset(
            {
                "manage_users",
                "manage_settings",
                "view_reports",
                "manage_sales",
                "manage_products",
                "manage_customers",
                "view_dashboard",
            }
        ),
        Role.super: frozenset(
            {
                "view_reports",
                "manage_sales",
                "manage_products",
                "manage_customers",
                "view_dashboard",
            }
        ),
        Role.user: frozenset(
            {
                "manage_sales",
                "view_dashboard",
            }
        ),
    }
)

ROLE_MODULES: Mapping[Role, frozenset[str]] = MappingProxyType(
    {
        Role.admin: frozenset(
            {
                "dashboard",
                "sales",
                "products",
                "customers",
                "reports",
                "users",
                "settings",
                "financial",
            }
        ),
        Role.super: frozenset(
            {
                "dashboard",
                "sales",
                "products",
                "customers",
                "reports",
                "financial",
            }
        ),
        Role.user: frozenset(
            {
                "dashboard",
                "sales",
            }
        ),
    }
)


def _validate_table(name: str, table: Mapping) -> None:
    keys = set(table)
    expected = set(Role)
    if keys != expected:
        missing = sorted(r.value for r in expected - keys)
        unknown = sorted(str(k) for k in keys - expected)
        raise ValueError(f"{name} does not match the role enumeration (missing={missing}, unknown={unknown})")


def _parse_role(role: str | None) -> Role | None:
    if role is None:
        return None
    try:
        return Role(role)
    except ValueError:
        return None


class Authorizer:
    """Answers capability checks for a session's role.

    Usage:
        authorizer = Authorizer()
        authorizer.has_permission(session_store.current(), "manage_sales")
    """

    def __init__(
        self,
        permissions: Mapping[Role, frozenset[str]] = ROLE_PERMISSIONS,
        modules: Mapping[Role, frozenset[str]] = ROLE_MODULES,
    ) -> None:
        _validate_table("permission table", permissions)
        _validate_table("module table", modules)
        self._permissions = permissions
        self._modules = modules

    def permissions_for(self, role: str | None) -> frozenset[str]:
        parsed = _parse_role(role)
        return self._permissions[parsed] if parsed is not None else frozenset()

    def modules_for(self, role: str | None) -> frozenset[str]:
        parsed = _parse_role(role)
        return self._modules[parsed] if parsed is not None else frozenset()

    def has_permission(self, session: Session | None, permission: str) -> bool:
        """True iff there is a session and its role's permission set contains permission."""
        return self._check(session, permission, self._permissions)

    def can_access_module(self, session: Session | None, module: str) -> bool:
        """True iff there is a session and its role's module set contains module."""
        return self._check(session, module, self._modules)

    def _check(self, session: Session | None, item: str, table: Mapping[Role, frozenset[str]]) -> bool:
        if session is None:
            return False
        role = _parse_role(session.role)
        if role is None:
            logger.warning("Unknown role %r on session for user %s", session.role, session.username)
            return False
        return item in table[role]
