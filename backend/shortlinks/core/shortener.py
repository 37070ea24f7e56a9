import secrets
import string
from typing import Optional

from sqlalchemy.orm import Session


# Alphanumerics without the visually confusable 0/O/o, 1/l/I and i
CHARSET = "".join(
    c for c in string.digits + string.ascii_lowercase + string.ascii_uppercase
    if c not in "0Oo1lIi"
)

ALIAS_MIN_LENGTH = 3
ALIAS_MAX_LENGTH = 30

RESERVED_WORDS = frozenset([
    'admin', 'api', 'static', 'www', 'app', 'docs', 'redoc',
    'openapi', 'health', 'status', 'login', 'logout', 'auth', 'verify'
])


def generate_short_code(length: int = 7) -> str:
    """
    Draw a random short code from CHARSET.

    Uniqueness is not checked here; the caller retries against the store.

    Note:
        - 6 chars: 55^6 ~ 2.8e10 combinations
        - 7 chars: 55^7 ~ 1.5e12 combinations
    """
    return ''.join(secrets.choice(CHARSET) for _ in range(length))


def validate_custom_alias(alias: Optional[str]) -> tuple[bool, str]:
    """
    Validate custom alias for short code.

    Args:
        alias: The custom alias to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not alias:
        return False, "Alias cannot be empty"

    if len(alias) < ALIAS_MIN_LENGTH:
        return False, f"Alias must be at least {ALIAS_MIN_LENGTH} characters"

    if len(alias) > ALIAS_MAX_LENGTH:
        return False, f"Alias must be at most {ALIAS_MAX_LENGTH} characters"

    # Only allowed characters: a-z, A-Z, 0-9, hyphen
    allowed = set(string.ascii_letters + string.digits + '-')

    if not all(c in allowed for c in alias):
        return False, "Alias can only contain letters, digits, and hyphens"

    if alias.startswith('-') or alias.endswith('-'):
        return False, "Alias cannot start or end with a hyphen"

    if alias.lower() in RESERVED_WORDS:
        return False, f"'{alias}' is a reserved word and cannot be used"

    return True, ""


def is_code_available(code: str, db: Session) -> bool:
    """
    Check if a code is free in the shared code/alias namespace.

    Advisory only: the insert itself is guarded by the link_keys primary key.
    """
    from ..models import LinkKey

    return db.get(LinkKey, code) is None
