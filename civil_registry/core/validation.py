"""Submission validation: presence checks and light normalisation."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping

from civil_registry.core.errors import ValidationError


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return len(value) == 0
    return False


def require_fields(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Raise ValidationError naming the first missing or empty field, in declared order."""
    for field in fields:
        if is_blank(payload.get(field)):
            raise ValidationError(field)


def parse_date(value: Any, field: str) -> date:
    """Parse an ISO date (or datetime) string.

    Malformed input is reported as a 400 on `field` instead of bubbling up
    as a server error.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValidationError(field, message=f"Le champ {field} doit être une date valide (AAAA-MM-JJ)") from exc


def split_full_name(value: str) -> tuple[str, str]:
    """'Awa Marie Diop' -> ('Awa', 'Marie Diop'). A single word leaves the last name empty."""
    parts = [part for part in value.split(" ") if part]
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])
