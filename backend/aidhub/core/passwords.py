"""Password hashing, verification, and strength rules.

bcrypt provides the one-way salted hash (a fresh salt per call via gensalt)
and the constant-time comparison inside checkpw. The async wrappers push the
CPU-bound work onto a worker thread so a slow hash never blocks the event
loop that serves other requests.

- hash_password / verify_password: sync primitives
- hash_password_async / verify_password_async: off-loop variants for services
- validate_password_strength: complexity rules (sync, no network)
- dummy_hash / verify_dummy_async: timing-safe stand-in for user enumeration
  defense, at the same cost factor as real hashes
"""

import asyncio
import logging
import secrets
import string
from functools import lru_cache

import bcrypt

from aidhub.core.errors import ValidationError

logger = logging.getLogger(__name__)

_MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes; longer input is rejected up front
_MAX_PASSWORD_BYTES = 72
# ASCII punctuation; accented letters are letters, not symbols
_SYMBOLS = frozenset(string.punctuation)


def hash_password(plaintext: str, rounds: int) -> str:
    """Hash a password with a per-call random salt.

    Args:
        plaintext: Password to hash.
        rounds: bcrypt cost factor (log2 of the iteration count).

    Returns:
        bcrypt digest as a str (``$2b$<rounds>$...``).
    """
    return bcrypt.hashpw(
        plaintext.encode(), bcrypt.gensalt(rounds=rounds)
    ).decode()


def verify_password(plaintext: str, digest: str) -> bool:
    """Check a password against a stored bcrypt digest.

    Args:
        plaintext: Candidate password.
        digest: Stored bcrypt digest.

    Returns:
        True if the password matches. A malformed digest never matches.
    """
    if len(plaintext.encode()) > _MAX_PASSWORD_BYTES:
        # Could never have passed validate_password_strength
        return False
    try:
        return bcrypt.checkpw(plaintext.encode(), digest.encode())
    except ValueError:
        logger.warning("Stored password digest is not a valid bcrypt hash")
        return False


@lru_cache(maxsize=4)
def dummy_hash(rounds: int) -> str:
    """Digest of a random password at the given cost, computed once per cost.

    Security: logins for unknown emails verify against this so they spend
    the same bcrypt work as a wrong password for a real account.
    """
    return hash_password(secrets.token_urlsafe(16), rounds)


def _verify_dummy(plaintext: str, rounds: int) -> bool:
    return verify_password(plaintext, dummy_hash(rounds))


async def hash_password_async(plaintext: str, rounds: int) -> str:
    """hash_password on a worker thread."""
    return await asyncio.to_thread(hash_password, plaintext, rounds)


async def verify_password_async(plaintext: str, digest: str) -> bool:
    """verify_password on a worker thread."""
    return await asyncio.to_thread(verify_password, plaintext, digest)


async def verify_dummy_async(plaintext: str, rounds: int) -> bool:
    """Verify against dummy_hash(rounds) on a worker thread. Never matches."""
    return await asyncio.to_thread(_verify_dummy, plaintext, rounds)


def validate_password_strength(password: str) -> None:
    """Validate password meets complexity requirements.

    At least 8 characters, at most 72 bytes, with an uppercase letter, a
    lowercase letter, a digit, and an ASCII punctuation symbol. Letter
    classes are Unicode-aware, so "Ä" counts as uppercase.

    Args:
        password: Plain-text password to validate.

    Raises:
        ValidationError: If password doesn't meet requirements.
    """
    if len(password) < _MIN_PASSWORD_LENGTH:
        raise ValidationError("Password must be at least 8 characters")
    if len(password.encode()) > _MAX_PASSWORD_BYTES:
        raise ValidationError("Password must be at most 72 bytes")
    if not any(c.isupper() for c in password):
        raise ValidationError("Password must contain an uppercase letter")
    if not any(c.islower() for c in password):
        raise ValidationError("Password must contain a lowercase letter")
    if not any(c.isdigit() for c in password):
        raise ValidationError("Password must contain a number")
    if not any(c in _SYMBOLS for c in password):
        raise ValidationError("Password must contain a special character")
