"""Exception hierarchy for redirect flow authentication errors.

Configuration, input and authority errors are raised at the call site that
detects them. Everything under ExchangeError is the steady-state failure
surface of a resumed flow and is delivered through the result channel
instead of being raised.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base exception for all authentication errors."""

    code: str = "auth_error"


class ConfigurationError(AuthError):
    """Raised when a required collaborator is missing or misconfigured."""

    code = "configuration_error"


class EmptyInputError(AuthError):
    """Raised when a call receives empty input it cannot act on."""

    code = "empty_input"


class EmptyHashError(EmptyInputError):
    """Raised when a redirect response is resumed without a location hash."""

    code = "hash_empty_error"


class EmptyRedirectTargetError(EmptyInputError):
    """Raised when the built authorization URL is empty.

    Navigating to an empty target would leave the interaction flagged as
    in progress with nothing to come back from.
    """

    code = "empty_navigate_uri"


class InteractionInProgressError(AuthError):
    """Raised when an interaction is already pending in the store."""

    code = "interaction_in_progress"


class InvalidAuthorityError(AuthError):
    """Raised when an authority URL is malformed or cannot be used."""

    code = "invalid_authority"

    def __init__(self, message: str, authority_url: str | None = None):
        if authority_url is not None:
            message = f"{message} Given Url: {authority_url}"
        super().__init__(message)
        self.authority_url = authority_url


class DiscoveryError(AuthError):
    """Raised when authority metadata discovery fails."""

    code = "endpoint_resolution_error"


class PKCEError(AuthError):
    """Raised when PKCE parameter generation fails."""

    code = "pkce_error"


class ExchangeError(AuthError):
    """Raised when parsing a redirect response or exchanging the code fails."""

    code = "exchange_error"


class AuthorizationResponseError(ExchangeError):
    """Raised when the redirect response is malformed or incomplete."""

    code = "invalid_authorization_response"


class StateValidationError(AuthorizationResponseError):
    """Raised when the state parameter is missing or does not match.

    A mismatch can mean a CSRF attempt or a response meant for another
    request.
    """

    code = "state_mismatch"


class NonceValidationError(AuthorizationResponseError):
    """Raised when the ID token nonce does not match the request nonce."""

    code = "nonce_mismatch"


class ProviderError(ExchangeError):
    """Raised when the identity provider returns an OAuth error response."""

    code = "provider_error"

    def __init__(
        self,
        error: str,
        error_description: str | None = None,
        error_uri: str | None = None,
    ):
        message = f"{error}: {error_description or 'No description provided'}"
        if error_uri:
            message += f" (see {error_uri})"
        super().__init__(message)
        self.error = error
        self.error_description = error_description
        self.error_uri = error_uri


class TokenError(ExchangeError):
    """Raised when the token endpoint cannot be reached or parsed."""

    code = "token_error"
