"""Resume token and resume code generation."""
from __future__ import annotations

from django.utils.crypto import get_random_string

# 32 symbols; 0/O and 1/I are left out so codes survive being read aloud or retyped.
RESUME_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
RESUME_CODE_LENGTH = 6
RESUME_TOKEN_LENGTH = 48  # ~285 bits from [a-zA-Z0-9]


def new_resume_token() -> str:
    """Durable, URL-safe token for resume links."""
    return get_random_string(RESUME_TOKEN_LENGTH)


def new_resume_code() -> str:
    """Short code for manual entry. Uniqueness among active sessions is checked on insert."""
    return get_random_string(RESUME_CODE_LENGTH, allowed_chars=RESUME_CODE_ALPHABET)


def normalize_resume_code(code: str | None) -> str:
    return (code or "").strip().upper()
