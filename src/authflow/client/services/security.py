"""Security utilities for the redirect flow.

Provides random state and nonce generation and their validation against
the values cached before navigating away.
"""

from __future__ import annotations

import secrets
import string

from authflow.client.models.errors import NonceValidationError, StateValidationError

_ALPHABET = string.ascii_letters + string.digits + "-._~"


def generate_state() -> str:
    """Generate cryptographically secure state parameter.

    The state parameter provides CSRF protection by ensuring the redirect
    response matches the original authorization request.

    Returns:
        Cryptographically secure random state string (32 characters)
    """
    return "".join(secrets.choice(_ALPHABET) for _ in range(32))


def generate_nonce() -> str:
    """Generate the nonce echoed back in the ID token."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(32))


def validate_state(expected: str | None, actual: str | None) -> None:
    """Validate state parameter matches expected value.

    Raises:
        StateValidationError: If either value is missing or they differ
    """
    if expected is None:
        raise StateValidationError(
            "No cached request state - the redirect was not started here"
        )
    if actual is None:
        raise StateValidationError("Redirect response missing state parameter")
    if not secrets.compare_digest(expected, actual):
        raise StateValidationError("State parameter mismatch - possible CSRF attack")


def validate_nonce(expected: str | None, actual: str | None) -> None:
    """Validate the ID token nonce claim.

    Raises:
        NonceValidationError: If either value is missing or they differ
    """
    if expected is None or actual is None:
        raise NonceValidationError("Missing nonce for ID token validation")
    if not secrets.compare_digest(expected, actual):
        raise NonceValidationError("Nonce mismatch - possible token replay")
