"""Token endpoint client for the authorization code exchange.

Implements RFC 6749 token endpoint interactions with PKCE (RFC 7636).
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from authflow.client.models.errors import TokenError
from authflow.client.models.tokens import TokenRequest, TokenResponse

logger = logging.getLogger(__name__)


class OAuth2TokenManager:
    """Exchanges authorization codes at the token endpoint.

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    Provider error responses come back as TokenResponse objects; only
    transport and parsing failures raise.
    """

    def __init__(self, timeout: float = 30.0):
        """Initialize the token manager.

        Args:
            timeout: HTTP request timeout in seconds
        """
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def exchange_code_for_token(
        self, token_request: TokenRequest
    ) -> TokenResponse:
        """Exchange authorization code for tokens.

        Implements RFC 6749 Section 4.1.3 - Access Token Request.

        Args:
            token_request: Token exchange request parameters

        Returns:
            TokenResponse: Token response (success or error)

        Raises:
            TokenError: If token exchange fails due to network/parsing issues
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        try:
            headers = {
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            }

            form_data = token_request.to_form_data()

            # Log request details (without sensitive data)
            logger.debug(
                f"Token request: grant_type={form_data['grant_type']}, "
                f"client_id={form_data['client_id']}, "
                f"scope={form_data.get('scope', 'none')}"
            )

            response = await self._http_client.post(
                token_request.token_endpoint,
                data=form_data,
                headers=headers,
            )

            return self._parse_token_response(response)

        except TokenError:
            raise
        except httpx.HTTPError as e:
            raise TokenError(f"HTTP error during token exchange: {e}") from e
        except Exception as e:
            raise TokenError(f"Unexpected error during token exchange: {e}") from e

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        """Parse token endpoint response into TokenResponse.

        Handles both successful responses (200) and error responses (400+)
        according to RFC 6749 Section 5.

        Raises:
            TokenError: If response cannot be parsed
        """
        try:
            response_data = response.json()
        except ValueError as e:
            raise TokenError(
                f"Token endpoint returned non-JSON response ({response.status_code})"
            ) from e

        if not isinstance(response_data, dict):
            raise TokenError("Token endpoint returned a non-object JSON body")

        if response.status_code == 200:
            if "access_token" not in response_data:
                raise TokenError("Token response missing required access_token")
            logger.info("Token exchange successful")
        else:
            error_code = response_data.setdefault("error", "unknown_error")
            error_description = response_data.get(
                "error_description", "No description provided"
            )
            logger.warning(
                f"Token exchange failed with {response.status_code}: "
                f"{error_code} - {error_description}"
            )

        try:
            return TokenResponse(**response_data)
        except ValidationError as e:
            raise TokenError(f"Invalid token response format: {e}") from e

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
