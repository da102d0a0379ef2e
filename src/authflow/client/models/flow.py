"""Authorization flow models for the redirect flow.

Contains models for caller requests, authorization URLs and fragment
responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlencode


@dataclass(frozen=True)
class AuthenticationRequest:
    """What the caller asks for when starting a login redirect."""

    scopes: list[str] = field(default_factory=lambda: ["openid", "profile"])
    prompt: str | None = None
    login_hint: str | None = None
    extra_query_parameters: dict[str, str] = field(default_factory=dict)

    def scope_string(self) -> str:
        # openid is required to get an ID token back
        scopes = list(self.scopes)
        if "openid" not in scopes:
            scopes.insert(0, "openid")
        return " ".join(scopes)


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the code flow."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    code_challenge: str
    code_challenge_method: str
    state: str
    nonce: str
    scope: str
    response_mode: str = "fragment"
    prompt: str | None = None
    login_hint: str | None = None
    extra_query_parameters: dict[str, str] = field(default_factory=dict)

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "response_type": "code",
            "response_mode": self.response_mode,
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
            "state": self.state,
            "nonce": self.nonce,
        }

        if self.prompt:
            params["prompt"] = self.prompt
        if self.login_hint:
            params["login_hint"] = self.login_hint
        for key, value in self.extra_query_parameters.items():
            params.setdefault(key, value)

        separator = "&" if "?" in self.authorization_endpoint else "?"
        return f"{self.authorization_endpoint}{separator}{urlencode(params)}"


@dataclass(frozen=True)
class AuthorizationResponse:
    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    @classmethod
    def from_fragment(cls, location_hash: str) -> AuthorizationResponse:
        """Parse a `#key=value&...` fragment into a response."""
        params = parse_qs(location_hash.lstrip("#"))

        def get_single_param(key: str) -> str | None:
            values = params.get(key, [])
            return values[0] if values else None

        return cls(
            code=get_single_param("code"),
            state=get_single_param("state"),
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
            error_uri=get_single_param("error_uri"),
        )

    def is_success(self) -> bool:
        return self.error is None and self.code is not None

    def is_error(self) -> bool:
        return self.error is not None

    def has_response_fields(self) -> bool:
        """True when the fragment carries any authorization response field.

        Plain page anchors and hash routes carry none of them.
        """
        return any(
            value is not None for value in (self.code, self.state, self.error)
        )
