"""
Token utility functions used by the external signature lifecycle.

These are small helpers that don't own any business rules; they can be
imported from models and services alike without circular imports.
"""

import secrets
from django.utils import timezone

# 32 random bytes = 256 bits of entropy, ~43 URL-safe characters
TOKEN_BYTES = 32


def generate_secure_token(length=TOKEN_BYTES):
    """
    Generate a cryptographically secure random token.

    Args:
        length: int, number of random bytes (default 32)

    Returns:
        str: URL-safe token string
    """
    return secrets.token_urlsafe(length)


def generate_unique_token():
    """
    Generate a token that no ExternalSignatureRequest currently holds.

    The unique index on the token column is the final guard; this loop only
    avoids tripping it in the common case.
    """
    from ..models import ExternalSignatureRequest

    token = generate_secure_token()
    while ExternalSignatureRequest.objects.filter(token=token).exists():
        token = generate_secure_token()
    return token


def is_token_expired(expires_at, now=None):
    """
    Check if an expiry timestamp has passed.

    Args:
        expires_at: datetime or None (None never expires)
        now: datetime, defaults to timezone.now()

    Returns:
        bool: True if expired
    """
    if expires_at is None:
        return False
    return (now or timezone.now()) > expires_at
