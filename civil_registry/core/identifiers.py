"""Citizen-visible identifiers (tracking numbers, record numbers)."""

import secrets
import string

ALPHABET = string.ascii_letters + string.digits + "_-"


def short_id(length: int) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def tracking_number() -> str:
    """Opaque 10-character correlation id shown to citizens."""
    return short_id(10)


def acte_number() -> str:
    return f"ACTE-{short_id(8)}"
