"""
Identifier generation and normalization for fusion-bot.

Handles quote short ids (generation, validation, input normalization) and
person keys used to group quotes by speaker.
Pure Python implementation - no external dependencies.
"""

import re
import secrets

# =============================================================================
# Short IDs
# =============================================================================

# Uppercase letters and digits minus I, O, 0 and 1
SHORT_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
SHORT_ID_LENGTH = 8
MIN_SHORT_ID_LENGTH = 4

SHORT_ID_PATTERN = re.compile(rf"^[{SHORT_ID_ALPHABET}]{{{SHORT_ID_LENGTH}}}$")


class InvalidArgumentError(ValueError):
    """Raised when an argument is rejected before any I/O happens."""


def new_short_id(length: int = SHORT_ID_LENGTH) -> str:
    """
    Generate a random short id.

    Each byte from the system CSPRNG is reduced modulo the alphabet size.
    The alphabet has 32 symbols, so the reduction is unbiased.

    Uniqueness is not guaranteed here; the quote store enforces it and a
    collision surfaces as a retryable insert conflict.
    """
    if length < MIN_SHORT_ID_LENGTH:
        raise InvalidArgumentError(
            f"Short id length must be at least {MIN_SHORT_ID_LENGTH}, got {length}"
        )

    random_bytes = secrets.token_bytes(length)
    return "".join(SHORT_ID_ALPHABET[b % len(SHORT_ID_ALPHABET)] for b in random_bytes)


def normalize_short_id(value: str | None) -> str:
    """Trim and uppercase a user-supplied short id (or prefix)."""
    if value is None:
        return ""
    return value.strip().upper()


def is_short_id(value: str | None) -> bool:
    """Check whether a value is a well-formed 8-character short id."""
    if not value:
        return False
    return bool(SHORT_ID_PATTERN.match(value))


# =============================================================================
# Person Keys
# =============================================================================

UNKNOWN_PERSON_KEY = "unknown"

_NON_SLUG_RUN = re.compile(r"[^a-z0-9]+")


def normalize_person_key(value: str | None) -> str:
    """
    Derive the grouping key for an attributed person.

    - Trims and lowercases
    - Collapses every run of characters outside [a-z0-9] to one hyphen
    - Strips leading/trailing hyphens
    - Returns "unknown" when nothing is left

    "  Ada  Lovelace  " -> "ada-lovelace"
    """
    if value is None or not value.strip():
        return UNKNOWN_PERSON_KEY

    normalized = _NON_SLUG_RUN.sub("-", value.strip().lower())
    normalized = normalized.strip("-")

    return normalized or UNKNOWN_PERSON_KEY
