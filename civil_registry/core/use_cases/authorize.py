"""
Use Case: Authorize

One declarative table of who may do what, and a single guard that
every route goes through. The guard fails before any read or write.
"""

from dataclasses import dataclass

from civil_registry.core.entities.principal import Principal
from civil_registry.core.entities.status import Role
from civil_registry.core.errors import Forbidden, NotFound, Unauthenticated


@dataclass(frozen=True)
class AccessRule:
    """`allowed_roles` may perform `action` on `resource`."""
    resource: str
    action: str
    allowed_roles: frozenset[Role]


CITIZEN = frozenset({Role.CITIZEN})
AGENT = frozenset({Role.AGENT})
ADMIN = frozenset({Role.ADMIN})

ACCESS_RULES: tuple[AccessRule, ...] = (
    # Citizen self-service
    AccessRule("birth_declaration", "create", CITIZEN),
    AccessRule("birth_certificate", "create", CITIZEN),
    AccessRule("own_request", "read", CITIZEN),
    AccessRule("own_request", "delete", CITIZEN),
    AccessRule("own_request", "attach", CITIZEN),
    AccessRule("upload", "create", CITIZEN),
    AccessRule("citizen_stats", "read", CITIZEN),
    AccessRule("notification", "read", CITIZEN),
    AccessRule("notification", "update", CITIZEN),
    AccessRule("document_request", "create", CITIZEN),
    AccessRule("document_request", "read", CITIZEN),
    AccessRule("payment", "create", CITIZEN),
    AccessRule("payment", "read", CITIZEN),
    # Agent processing
    AccessRule("request", "list", AGENT),
    AccessRule("birth_declaration", "read", AGENT),
    AccessRule("birth_declaration", "transition", AGENT),
    AccessRule("birth_declaration", "approve", AGENT),
    AccessRule("birth_certificate", "read", AGENT),
    AccessRule("birth_certificate", "transition", AGENT),
    AccessRule("birth_certificate", "upload_final", AGENT),
    AccessRule("agent_stats", "read", AGENT),
    # Administration
    AccessRule("user", "list", ADMIN),
    AccessRule("user", "create", ADMIN),
    AccessRule("user", "transition", ADMIN),
    AccessRule("citizen", "transition", ADMIN),
    AccessRule("request", "transition", ADMIN),
    AccessRule("payment", "list", ADMIN),
    AccessRule("payment", "export", ADMIN),
    AccessRule("admin_stats", "read", ADMIN),
)

_RULES = {(rule.resource, rule.action): rule for rule in ACCESS_RULES}


def rule_for(resource: str, action: str) -> AccessRule:
    """Look up a rule; an unknown pair is a programming error."""
    try:
        return _RULES[(resource, action)]
    except KeyError:
        raise LookupError(f"No access rule for {resource}:{action}") from None


def authorize(principal: Principal | None, resource: str, action: str) -> Principal:
    """
    Check a session against the rule for (resource, action).

    Args:
        principal: Authenticated caller, or None when no valid session.
        resource: Resource name as declared in ACCESS_RULES.
        action: Action name as declared in ACCESS_RULES.

    Returns:
        The principal, unchanged, when allowed.
    """
    rule = rule_for(resource, action)
    if principal is None:
        raise Unauthenticated()
    if principal.role not in rule.allowed_roles:
        raise Forbidden()
    return principal


def ensure_owner(record, principal: Principal, message: str | None = None):
    """Citizens only see their own rows. Someone else's row reads as missing."""
    if record is None or getattr(record, "citizen_id", None) != principal.user_id:
        raise NotFound(message)
    return record
