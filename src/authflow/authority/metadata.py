"""Lazy authority endpoint discovery.

Fetches the OpenID Connect discovery document for an authority the first
time its endpoints are needed, running AAD instance discovery first when the
authority must be validated and its host is not a well-known one.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from authflow.authority.models import (
    AuthorityDescriptor,
    AuthorityKind,
    OpenIdConfiguration,
)
from authflow.client.models.errors import DiscoveryError, InvalidAuthorityError

logger = logging.getLogger(__name__)

INSTANCE_DISCOVERY_ENDPOINT = (
    "https://login.microsoftonline.com/common/discovery/instance"
)

TRUSTED_HOSTS = frozenset(
    {
        "login.windows.net",
        "login.chinacloudapi.cn",
        "login.cloudgovapi.us",
        "login.microsoftonline.com",
        "login.microsoftonline.de",
        "login.microsoftonline.us",
    }
)


class AuthorityMetadataClient:
    """Resolves and caches the endpoints of authorities.

    Results are cached per canonical authority URL for the lifetime of the
    client.
    """

    def __init__(self, timeout: float = 30.0):
        """Initialize authority discovery.

        Args:
            timeout: HTTP request timeout in seconds
        """
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=timeout)
        self._cache: dict[str, OpenIdConfiguration] = {}

    async def get_configuration(
        self, authority: AuthorityDescriptor
    ) -> OpenIdConfiguration:
        """Return the discovered endpoints for an authority.

        Raises:
            InvalidAuthorityError: If the authority fails validation
            DiscoveryError: If a discovery document cannot be fetched
        """
        cached = self._cache.get(authority.canonical_url)
        if cached is not None:
            return cached

        endpoint = await self._discovery_endpoint(authority)
        logger.debug(f"Fetching OpenID configuration from {endpoint}")

        data = await self._fetch_json(endpoint)
        try:
            configuration = OpenIdConfiguration(**data)
        except ValidationError as e:
            raise DiscoveryError(
                f"Invalid OpenID configuration at {endpoint}: {e}"
            ) from e

        self._cache[authority.canonical_url] = configuration
        logger.info(f"Resolved endpoints for authority {authority.canonical_url}")
        return configuration

    async def _discovery_endpoint(self, authority: AuthorityDescriptor) -> str:
        match authority.kind:
            case AuthorityKind.AAD:
                if not authority.is_validated or authority.host in TRUSTED_HOSTS:
                    return authority.openid_configuration_endpoint
                return await self._instance_discovery(authority)
            case AuthorityKind.B2C:
                if authority.is_validated:
                    raise InvalidAuthorityError(
                        "Authority validation is not supported for B2C "
                        "authorities; disable validate_authority.",
                        authority.raw_url,
                    )
                return authority.openid_configuration_endpoint
            case _:
                raise InvalidAuthorityError(
                    "Unrecognized authority type.", authority.raw_url
                )

    async def _instance_discovery(self, authority: AuthorityDescriptor) -> str:
        """Ask the instance discovery service whether the host is an authority.

        Returns:
            The tenant discovery endpoint for the authority
        """
        query = urlencode(
            {
                "api-version": "1.1",
                "authorization_endpoint": authority.default_authorization_endpoint,
            }
        )
        data = await self._fetch_json(f"{INSTANCE_DISCOVERY_ENDPOINT}?{query}")

        tenant_discovery_endpoint = data.get("tenant_discovery_endpoint")
        if not tenant_discovery_endpoint:
            logger.error(
                f"Instance discovery rejected authority {authority.canonical_url}: "
                f"{data.get('error', 'unknown_error')}"
            )
            raise InvalidAuthorityError(
                "Authority is not a known identity provider instance.",
                authority.raw_url,
            )
        return tenant_discovery_endpoint

    async def _fetch_json(self, url: str) -> dict:
        try:
            response = await self._http_client.get(
                url, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as e:
            raise DiscoveryError(f"HTTP error fetching {url}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise DiscoveryError(
                f"Non-JSON response ({response.status_code}) from {url}"
            ) from e

        if not isinstance(data, dict):
            raise DiscoveryError(f"Unexpected JSON document from {url}")
        # Instance discovery reports rejection as a 400 with an error body
        if response.status_code != 200 and "error" not in data:
            raise DiscoveryError(f"Discovery failed ({response.status_code}) at {url}")
        return data

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http_client.aclose()
