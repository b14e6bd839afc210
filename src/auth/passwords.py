"""bcrypt hashing and the admin password policy."""

import re

import bcrypt

PASSWORD_MIN_LENGTH = 12
BCRYPT_MAX_BYTES = 72
BCRYPT_PREFIX = "$2"

_LOWER = re.compile(r"[a-z]")
_UPPER = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"\d")
_SYMBOL = re.compile(r"[^A-Za-z0-9\s]")


def _encode(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes and newer releases reject longer input
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt, returning the ``$2b$...`` string."""
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a bcrypt hash. Malformed hashes never verify."""
    try:
        return bcrypt.checkpw(_encode(password), hashed.encode("ascii"))
    except ValueError:
        return False


def is_bcrypt_hash(value: str) -> bool:
    return value.startswith(BCRYPT_PREFIX) and len(value) == 60


def check_password_strength(password: str) -> list[str]:
    """Validate a password against the admin policy. Returns list of problems (empty = OK)."""
    problems: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not _LOWER.search(password):
        problems.append("Password must contain at least one lowercase letter")
    if not _UPPER.search(password):
        problems.append("Password must contain at least one uppercase letter")
    if not _DIGIT.search(password):
        problems.append("Password must contain at least one digit")
    if not _SYMBOL.search(password):
        problems.append("Password must contain at least one special character")
    return problems
