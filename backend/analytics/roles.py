"""
Role Catalogue — Pharmaceutical roles, ranking, and data-access scope.

Roles come from the auth provider in two vocabularies: the provider's own
coarse roles ("admin", "manager", "analyst", ...) and the pharmaceutical
roles used across the dashboard. Analytics only cares about the second set,
and only about one property of it: how far up the organizational hierarchy
a role may see.

  facility  — own facility only (facility officers, managers, QA, finance...)
  zonal     — every facility in the caller's zone
  regional  — every facility in the caller's region
  national  — everything

Usage:
    from analytics.roles import get_role_scope, map_external_role

    get_role_scope("zonal")                # → "zonal"
    get_role_scope("data_analyst")         # → "facility"
    get_role_scope("admin")                # → "national"
    map_external_role("admin")             # → "national"
"""

from __future__ import annotations

from typing import Literal

import structlog

logger = structlog.get_logger()

ScopeLevel = Literal["facility", "zonal", "regional", "national"]

# facility < zonal < regional < national
SCOPE_RANK: dict[str, int] = {
    "facility": 0,
    "zonal": 1,
    "regional": 2,
    "national": 3,
}

ROLE_HIERARCHY: dict[str, int] = {
    "viewer": 1,
    "facility_officer": 2,
    "qa": 3,
    "procurement": 4,
    "finance": 5,
    "data_analyst": 6,
    "program_manager": 7,
    "facility_manager": 8,
    "zonal": 9,
    "regional": 10,
    "national": 11,
}

VALID_ROLES: list[str] = list(ROLE_HIERARCHY.keys())

ROLE_SCOPES: dict[str, ScopeLevel] = {
    "zonal": "zonal",
    "regional": "regional",
    "national": "national",
}

DEFAULT_SCOPE: ScopeLevel = "facility"

EXTERNAL_ROLE_MAP: dict[str, str] = {
    "national": "national",
    "regional": "regional",
    "zonal": "zonal",
    "admin": "national",  # legacy
    "manager": "facility_manager",
    "analyst": "data_analyst",
    "viewer": "viewer",
}

DEFAULT_EXTERNAL_ROLE = "facility_officer"


def is_valid_role(role: str) -> bool:
    return role in ROLE_HIERARCHY


def map_external_role(external_role: str | None) -> str:
    """Map an auth-provider role onto the pharmaceutical role set."""
    if not external_role:
        return "viewer"
    role = EXTERNAL_ROLE_MAP.get(external_role)
    if role is None:
        logger.warning("roles.unmapped_external_role", external_role=external_role, fallback=DEFAULT_EXTERNAL_ROLE)
        return DEFAULT_EXTERNAL_ROLE
    return role


def resolve_role(role: str | None) -> str:
    """Pharmaceutical roles pass through; auth-provider roles are mapped."""
    if role and is_valid_role(role):
        return role
    return map_external_role(role)


def get_role_scope(role: str | None) -> ScopeLevel:
    """Scope level a role may see, after resolving auth-provider roles. Unknown roles are facility-scoped."""
    return ROLE_SCOPES.get(resolve_role(role), DEFAULT_SCOPE)


def has_higher_or_equal_role(user_role: str, required_role: str) -> bool:
    return ROLE_HIERARCHY.get(user_role, 0) >= ROLE_HIERARCHY.get(required_role, 0)


def get_assignable_roles(user_role: str) -> list[str]:
    """Roles strictly below ``user_role`` in the ranking."""
    user_level = ROLE_HIERARCHY.get(user_role, 0)
    return [role for role in VALID_ROLES if ROLE_HIERARCHY[role] < user_level]
