"""Share code generation and format validation."""

from __future__ import annotations

import re
import secrets

from config import settings


# No 0/O/o, 1/I/i/l: codes get read aloud and copied by hand.
SHARE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
SHARE_CODE_LENGTH = 8

_SHARE_CODE_PATTERN = re.compile(rf"[{SHARE_CODE_ALPHABET}]{{{SHARE_CODE_LENGTH}}}")


def generate_share_code() -> str:
    """Return a random share code drawn from the CSPRNG."""
    return "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(SHARE_CODE_LENGTH))


def is_valid_share_code(value: object) -> bool:
    """True when *value* has the exact alphabet and length of a share code."""
    if not isinstance(value, str):
        return False
    return _SHARE_CODE_PATTERN.fullmatch(value) is not None


def build_share_url(code: str, base_url: str | None = None) -> str:
    origin = (base_url or settings.PUBLIC_APP_URL or "http://localhost:3000").rstrip("/")
    return f"{origin}/share/{code}"
