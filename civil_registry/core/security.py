"""Password hashing (bcrypt). Reads `$2a$` / `$2b$` hashes alike, so accounts hashed elsewhere with bcrypt keep working."""

import bcrypt

ROUNDS = 10
# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: int = ROUNDS) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds)).decode("ascii")


def verify_password(password: str, stored: str | None) -> bool:
    if not stored:
        return False
    try:
        return bcrypt.checkpw(_encode(password), stored.encode("ascii"))
    except ValueError:
        # not a bcrypt hash
        return False
