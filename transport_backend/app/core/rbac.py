"""
Role-based access control.

Holds the static route access table checked by the access gate, the pure
decision function behind it, and the role helpers used by actions.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Tuple
from transport_backend.app.core.config import settings
from transport_backend.app.core.exceptions import InsufficientPermissionsError
from transport_backend.app.models.enums import UserRole

ADMIN = UserRole.ADMIN.value
DRIVER = UserRole.DRIVER.value
CLIENT = UserRole.CLIENT.value

# Ordered: the first pattern matching the path decides.
# "(.*)" matches anything, "(/.*)?" also covers the detail pages.
ROUTE_ACCESS: List[Tuple[str, Tuple[str, ...]]] = [
    ("/admin(.*)", (ADMIN,)),
    ("/driver(.*)", (DRIVER,)),
    ("/client(.*)", (CLIENT,)),
    ("/list/users(/.*)?", (ADMIN,)),
    ("/list/drivers(/.*)?", (ADMIN,)),
    ("/list/clients(/.*)?", (ADMIN,)),
    ("/list/vehicles(/.*)?", (ADMIN,)),
    ("/list/trips(/.*)?", (ADMIN, DRIVER, CLIENT)),
    ("/list/shipments(/.*)?", (ADMIN, CLIENT, DRIVER)),
    ("/list/issues(/.*)?", (ADMIN,)),
    ("/list/expenses(/.*)?", (ADMIN, DRIVER)),
    ("/list/notifications(/.*)?", (ADMIN,)),
    ("/list/maintenance(/.*)?", (ADMIN,)),
]


@dataclass(frozen=True)
class RouteRule:
    pattern: str
    regex: Pattern
    allowed_roles: Tuple[str, ...]

    def matches(self, path: str) -> bool:
        return self.regex.fullmatch(path) is not None


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of the gate: allowed, or a redirect target."""
    allowed: bool
    redirect_to: Optional[str] = None
    rule: Optional[str] = None
    reason: str = "no-match"


def compile_pattern(pattern: str) -> Pattern:
    """Escape the literal parts of a route pattern, keep its groups as regex."""
    parts = re.split(r"(\([^)]*\)\??)", pattern)
    source = "".join(part if part.startswith("(") else re.escape(part) for part in parts)
    return re.compile(source + "/?")


def build_rules(table: Sequence[Tuple[str, Iterable[str]]]) -> List[RouteRule]:
    return [
        RouteRule(pattern=pattern, regex=compile_pattern(pattern), allowed_roles=tuple(roles))
        for pattern, roles in table
    ]


ROUTE_RULES = build_rules(ROUTE_ACCESS)


def get_role_dashboard_path(role: str) -> str:
    """Home page of a role, e.g. ``/driver``."""
    return f"/{role}"


def match_rule(path: str, rules: Sequence[RouteRule] = ROUTE_RULES) -> Optional[RouteRule]:
    for rule in rules:
        if rule.matches(path):
            return rule
    return None


def decide_access(
    path: str,
    identity: Optional[Dict],
    rules: Sequence[RouteRule] = ROUTE_RULES,
) -> AccessDecision:
    """
    Decide whether a request may reach its page.

    First matching rule wins:
    - no session -> sign-in page
    - session without a role -> onboarding page
    - role not allowed -> the role's own home page
    Paths matching no rule pass through.
    """
    rule = match_rule(path, rules)
    if rule is None:
        return AccessDecision(allowed=True)

    if identity is None:
        return AccessDecision(False, settings.sign_in_path, rule.pattern, "unauthenticated")

    role = identity.get("role")
    if not role:
        return AccessDecision(False, settings.onboarding_path, rule.pattern, "missing-role")

    if role not in rule.allowed_roles:
        return AccessDecision(False, get_role_dashboard_path(role), rule.pattern, "role-not-allowed")

    return AccessDecision(True, None, rule.pattern, "allowed")


def has_role(identity: Optional[Dict], required_role: str) -> bool:
    return bool(identity) and identity.get("role") == required_role


def has_any_role(identity: Optional[Dict], required_roles: Iterable[str]) -> bool:
    return bool(identity) and identity.get("role") in set(required_roles)


def require_role(identity: Optional[Dict], required_role: str) -> str:
    """
    Require a specific role.

    Raises:
        InsufficientPermissionsError: no role, or a different role
    """
    return require_any_role(identity, [required_role])


def require_any_role(identity: Optional[Dict], required_roles: Sequence[str]) -> str:
    role = identity.get("role") if identity else None

    if not role:
        raise InsufficientPermissionsError("Unauthorized: No role assigned")

    if role not in required_roles:
        if len(required_roles) == 1:
            message = f"Unauthorized: Requires {required_roles[0]} role, but user has {role}"
        else:
            message = f"Unauthorized: Requires one of [{', '.join(required_roles)}], but user has {role}"
        raise InsufficientPermissionsError(message)

    return role
