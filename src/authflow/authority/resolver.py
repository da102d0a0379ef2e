"""Authority classification.

Decides from the configured URL alone which dialect an authority speaks.
No network I/O happens here; endpoint discovery is done later by
`AuthorityMetadataClient`.
"""

from __future__ import annotations

import logging

from authflow.authority.models import (
    B2C_PATH_SEGMENT,
    AuthorityDescriptor,
    AuthorityKind,
    authority_path_segments,
)
from authflow.client.models.errors import InvalidAuthorityError

logger = logging.getLogger(__name__)


def detect_authority_kind(authority_url: str) -> AuthorityKind:
    """Classify an authority URL by its first path segment.

    Only the first segment is inspected. Anything other than `tfp` is AAD,
    the default dialect.
    """
    segments = authority_path_segments(authority_url)
    if segments and segments[0] == B2C_PATH_SEGMENT:
        return AuthorityKind.B2C
    return AuthorityKind.AAD


def resolve_authority(
    authority_url: str | None, validate_authority: bool = True
) -> AuthorityDescriptor | None:
    """Create a descriptor of the right kind for an authority URL.

    Args:
        authority_url: Configured authority URL
        validate_authority: Whether the authority must be validated before use

    Returns:
        The descriptor, or None when no authority is configured

    Raises:
        InvalidAuthorityError: If the URL is malformed for its kind
    """
    if authority_url is None or not authority_url.strip():
        return None

    kind = detect_authority_kind(authority_url)
    logger.debug(f"Classified authority {authority_url} as {kind.value}")

    if kind is AuthorityKind.B2C or kind is AuthorityKind.AAD:
        return AuthorityDescriptor.create(authority_url, kind, validate_authority)

    raise InvalidAuthorityError("Unrecognized authority type.", authority_url)


class AuthorityResolver:
    """Resolves authority URLs with a fixed validation setting."""

    def __init__(self, validate_authority: bool = True):
        self.validate_authority = validate_authority

    def resolve(
        self, authority_url: str | None, validate_authority: bool | None = None
    ) -> AuthorityDescriptor | None:
        if validate_authority is None:
            validate_authority = self.validate_authority
        return resolve_authority(authority_url, validate_authority)
