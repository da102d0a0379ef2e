"""Authority descriptor models.

An authority is the identity provider endpoint and tenant that decides which
protocol dialect applies. The descriptor is a closed variant: `kind` is the
only discriminant consumers switch on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit

from pydantic import BaseModel

from authflow.client.models.errors import InvalidAuthorityError

B2C_PATH_SEGMENT = "tfp"


class AuthorityKind(str, Enum):
    AAD = "aad"
    B2C = "b2c"


def authority_path_segments(authority_url: str) -> list[str]:
    """Split the path of an authority URL into its non-empty segments."""
    path = urlsplit(authority_url.strip()).path
    return [segment for segment in path.split("/") if segment]


@dataclass(frozen=True)
class AuthorityDescriptor:
    """Immutable description of a configured authority.

    Build instances through `create`, which checks the shape each kind
    requires. The derived fields are filled in from the raw URL.
    """

    raw_url: str
    kind: AuthorityKind
    is_validated: bool
    host: str = field(default="", compare=False)
    tenant: str = field(default="", compare=False)
    policy: str | None = field(default=None, compare=False)
    canonical_url: str = field(default="", compare=False)

    @classmethod
    def create(
        cls, raw_url: str, kind: AuthorityKind, validate_authority: bool
    ) -> AuthorityDescriptor:
        """Construct a descriptor, validating the per-kind URL shape.

        Raises:
            InvalidAuthorityError: If the URL does not fit the kind
        """
        parts = urlsplit(raw_url.strip())
        if parts.scheme.lower() != "https":
            raise InvalidAuthorityError(
                "Authority URL must be an absolute https URL.", raw_url
            )
        if not parts.hostname:
            raise InvalidAuthorityError("Authority URL has no host.", raw_url)

        segments = authority_path_segments(raw_url)
        policy = None

        if kind is AuthorityKind.B2C:
            if len(segments) < 3 or segments[0] != B2C_PATH_SEGMENT:
                raise InvalidAuthorityError(
                    "B2C authority URL must have the form "
                    "https://<host>/tfp/<tenant>/<policy>/.",
                    raw_url,
                )
            tenant, policy = segments[1], segments[2]
            canonical_segments = segments[:3]
        elif kind is AuthorityKind.AAD:
            if not segments:
                raise InvalidAuthorityError(
                    "AAD authority URL must include a tenant path segment.", raw_url
                )
            tenant = segments[0]
            canonical_segments = segments[:1]
        else:
            raise InvalidAuthorityError(f"Unknown authority kind {kind!r}.", raw_url)

        host = parts.netloc.lower()
        canonical_url = f"https://{host}/{'/'.join(canonical_segments)}/"

        return cls(
            raw_url=raw_url,
            kind=kind,
            is_validated=validate_authority,
            host=host,
            tenant=tenant,
            policy=policy,
            canonical_url=canonical_url,
        )

    @property
    def openid_configuration_endpoint(self) -> str:
        return f"{self.canonical_url}v2.0/.well-known/openid-configuration"

    @property
    def default_authorization_endpoint(self) -> str:
        return f"{self.canonical_url}oauth2/v2.0/authorize"


class OpenIdConfiguration(BaseModel):
    """Endpoints published in an OpenID Connect discovery document."""

    authorization_endpoint: str
    token_endpoint: str
    issuer: str | None = None
    end_session_endpoint: str | None = None
