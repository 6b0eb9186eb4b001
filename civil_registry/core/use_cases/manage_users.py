"""
Use Case: Manage Users

Admin view over every account (citizens and staff) and account creation.
"""

import logging

from civil_registry.core.entities.status import AccountStatus, Role
from civil_registry.core.errors import ValidationError
from civil_registry.core.security import hash_password
from civil_registry.core.validation import split_full_name

logger = logging.getLogger(__name__)


def account_row(account, kind: str) -> dict:
    if kind == "citizen":
        display = account.name or "Sans nom"
    else:
        display = account.display_name
    return {
        "id": account.id,
        "name": account.name if kind == "citizen" else (account.name or account.display_name),
        "email": account.email,
        "role": account.role,
        "status": account.status,
        "createdAt": account.created_at,
        "displayName": display,
    }


class ListUsersUseCase:
    """Citizens, agents and admins in one list, optionally filtered by role."""

    def __init__(self, store):
        self._store = store

    def execute(self, role: str | None = None) -> list[dict]:
        if role in (None, "", "all"):
            wanted = None
        else:
            try:
                wanted = Role(role)
            except ValueError:
                raise ValidationError("role", message="Rôle invalide") from None

        rows = []
        if wanted in (None, Role.CITIZEN):
            rows += [account_row(c, "citizen") for c in self._store.citizens.list_all()]
        if wanted != Role.CITIZEN:
            staff_role = wanted.value if wanted else None
            rows += [account_row(u, u.role) for u in self._store.users.list_all(role=staff_role)]
        return rows


class CreateUserUseCase:
    """
    Use Case: admin creates an account.

    `name` is split into first/last name for agents. An email already used
    by any account is refused.
    """

    REQUIRED = ("name", "email", "password", "role")

    def __init__(self, store):
        self._store = store

    def execute(self, payload: dict):
        if any(not payload.get(field) for field in self.REQUIRED):
            raise ValidationError(message="Tous les champs sont requis")
        try:
            role = Role(payload["role"])
        except ValueError:
            raise ValidationError("role", message="Rôle invalide") from None

        email = payload["email"].strip().lower()
        if self._store.citizens.get_by_email(email) or self._store.users.get_by_email(email):
            raise ValidationError("email", message="Cet email est déjà utilisé")

        hashed = hash_password(payload["password"])
        name = payload["name"].strip()
        if role == Role.CITIZEN:
            account = self._store.citizens.add(
                name=name, email=email, hashed_password=hashed,
                role=role.value, status=AccountStatus.ACTIVE.value,
            )
        else:
            first_name, last_name = split_full_name(name) if role == Role.AGENT else ("", "")
            account = self._store.users.add(
                first_name=first_name, last_name=last_name, name=name, email=email,
                hashed_password=hashed, role=role.value, status=AccountStatus.ACTIVE.value,
            )
        logger.info(f"Admin created {role.value} account {account.id}")
        return role, account
