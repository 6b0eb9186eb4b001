"""
Entity: Principal

The authenticated caller as seen by the workflow core: who they are
and which role the session grants them.
"""

from dataclasses import dataclass

from civil_registry.core.entities.status import Role


@dataclass(frozen=True)
class Principal:
    """Identity carried by a session."""
    user_id: str
    role: Role
    email: str = ""
