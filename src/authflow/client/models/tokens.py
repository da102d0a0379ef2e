"""Token exchange models for the authorization code flow.

Contains the token request form, the token endpoint response and the
account context derived from the ID token.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jwt
from pydantic import BaseModel, Field


@dataclass(frozen=True)
class TokenRequest:
    """Token exchange request parameters (RFC 6749 Section 4.1.3).

    Includes the PKCE code_verifier (RFC 7636) cached when the redirect
    started.
    """

    # Required fields first
    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    code_verifier: str  # RFC 7636 PKCE

    # Optional fields with defaults last
    grant_type: str = "authorization_code"
    scope: str | None = None

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Token requests must use form encoding, not JSON (RFC 6749 Section 4.1.3).
        """
        data = {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "code_verifier": self.code_verifier,
        }

        if self.scope:
            data["scope"] = self.scope

        return data


def decode_id_token_claims(id_token: str) -> dict[str, Any]:
    """Read the claims of an ID token without checking its signature.

    The token came straight from the token endpoint over TLS, so only the
    claims are needed here.

    Raises:
        ValueError: If the token cannot be decoded as a JWT
    """
    try:
        return jwt.decode(id_token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise ValueError(f"ID token could not be decoded: {e}") from e


class AccountInfo(BaseModel):
    """Account context for a completed sign-in, read from ID token claims."""

    home_account_id: str
    username: str | None = None
    name: str | None = None
    tenant_id: str | None = None
    id_token_claims: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> AccountInfo:
        object_id = claims.get("oid") or claims.get("sub", "")
        tenant_id = claims.get("tid")
        home_account_id = f"{object_id}.{tenant_id}" if tenant_id else object_id

        return cls(
            home_account_id=home_account_id,
            username=claims.get("preferred_username") or claims.get("email"),
            name=claims.get("name"),
            tenant_id=tenant_id,
            id_token_claims=claims,
        )


class TokenResponse(BaseModel):
    """Token endpoint response (RFC 6749 Section 5).

    Represents both successful responses (Section 5.1) and error
    responses (Section 5.2).
    """

    # Success response fields (RFC 6749 Section 5.1)
    access_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None  # Seconds until expiry
    refresh_token: str | None = None
    scope: str | None = None
    id_token: str | None = None

    # Error response fields (RFC 6749 Section 5.2)
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_success(self) -> bool:
        """Check if token response indicates success."""
        return self.error is None and self.access_token is not None

    def is_error(self) -> bool:
        """Check if token response indicates an error."""
        return self.error is not None

    def id_token_claims(self) -> dict[str, Any] | None:
        """Return the decoded ID token claims, or None without an ID token."""
        if not self.id_token:
            return None
        return decode_id_token_claims(self.id_token)
