"""
Session tokens: HS256 JWTs carrying `sub`, `email` and `role`.

The identity provider itself is external; this module only issues
tokens (operators, tests) and turns a bearer token back into a
Principal.
"""

import logging
import uuid
from datetime import datetime, timezone

import jwt
from jwt import InvalidTokenError

from civil_registry.config.settings import Settings, get_settings
from civil_registry.core.entities.principal import Principal
from civil_registry.core.entities.status import Role

logger = logging.getLogger(__name__)


def issue_token(
    user_id: str,
    role: Role | str,
    email: str = "",
    settings: Settings | None = None,
    expires_in: int | None = None,
) -> str:
    """Mint a signed session token for `user_id`."""
    settings = settings or get_settings()
    now = int(datetime.now(timezone.utc).timestamp())
    payload = {
        "sub": user_id,
        "email": email,
        "role": Role(role).value,
        "aud": settings.session_audience,
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else settings.session_ttl_seconds),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_token(token: str, settings: Settings | None = None) -> Principal | None:
    """Principal for a valid token; None for anything expired, tampered or malformed."""
    settings = settings or get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.session_algorithm],
            audience=settings.session_audience,
            options={"verify_exp": True, "verify_aud": True},
        )
    except InvalidTokenError as exc:
        logger.debug(f"Rejected session token: {exc}")
        return None

    try:
        role = Role(claims.get("role"))
    except ValueError:
        logger.debug(f"Rejected session token with role {claims.get('role')!r}")
        return None
    if not claims.get("sub"):
        return None
    return Principal(user_id=claims["sub"], role=role, email=claims.get("email") or "")
