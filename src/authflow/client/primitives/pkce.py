"""PKCE (Proof Key for Code Exchange) for the redirect flow.

Implements RFC 7636 with the S256 method. The verifier is cached across the
navigation boundary and sent with the token request, so an intercepted code
is useless on its own. Whatever comes back out of the store is checked
again before it is trusted.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import string
from dataclasses import dataclass

from authflow.client.models.errors import PKCEError

VERIFIER_ALPHABET = frozenset(string.ascii_letters + string.digits + "-._~")


def check_code_verifier(code_verifier: str) -> None:
    """Check a verifier against RFC 7636 Section 4.1.

    Raises:
        PKCEError: If the length or characters are not allowed
    """
    if not (43 <= len(code_verifier) <= 128):
        raise PKCEError("code_verifier must be 43-128 characters")
    if not set(code_verifier) <= VERIFIER_ALPHABET:
        raise PKCEError("code_verifier contains characters outside RFC 7636")


@dataclass(frozen=True)
class PKCEParameters:
    """A verifier and the challenge derived from it."""

    code_verifier: str
    code_challenge: str
    code_challenge_method: str = "S256"


class PKCEManager:
    """Generates PKCE parameters and restores them after a redirect."""

    def generate_parameters(self) -> PKCEParameters:
        """Generate new PKCE parameters for an authorization flow.

        Raises:
            PKCEError: If parameter generation fails
        """
        try:
            code_verifier = "".join(
                secrets.choice(sorted(VERIFIER_ALPHABET)) for _ in range(128)
            )
        except Exception as e:
            raise PKCEError(f"Failed to generate PKCE parameters: {e}") from e

        return self.restore(code_verifier)

    def restore(self, code_verifier: str) -> PKCEParameters:
        """Rebuild parameters from a verifier read back from the store.

        Raises:
            PKCEError: If the verifier is not a valid RFC 7636 verifier
        """
        check_code_verifier(code_verifier)
        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=self.generate_code_challenge(code_verifier),
        )

    @staticmethod
    def generate_code_challenge(code_verifier: str) -> str:
        """Derive the S256 code challenge for a verifier.

        RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))
        """
        digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
