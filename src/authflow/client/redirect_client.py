"""Redirect login client.

Wires authority resolution, the protocol engine and the redirect controller
together behind a small login/handle-redirect interface.
"""

from __future__ import annotations

import logging

from authflow.authority.metadata import AuthorityMetadataClient
from authflow.authority.resolver import resolve_authority
from authflow.client.models.flow import AuthenticationRequest
from authflow.client.services.code_module import AuthorizationCodeModule
from authflow.client.services.tokens import OAuth2TokenManager
from authflow.redirect.config import RedirectSettings
from authflow.redirect.handler import RedirectFlowController
from authflow.redirect.navigation import NavigationPort
from authflow.redirect.results import AuthCallback, AuthResult
from authflow.redirect.storage import TemporaryStore

logger = logging.getLogger(__name__)


class RedirectClient:
    """Public entry point for redirect sign-in.

    Typical use on every page load::

        client = RedirectClient(settings, store, navigator, callback)
        result = await client.handle_redirect()
        if result is None and not signed_in:
            await client.login()
    """

    def __init__(
        self,
        settings: RedirectSettings,
        store: TemporaryStore,
        navigator: NavigationPort,
        callback: AuthCallback | None,
        metadata_client: AuthorityMetadataClient | None = None,
        token_manager: OAuth2TokenManager | None = None,
    ):
        """Initialize the client.

        Args:
            settings: Client configuration
            store: Temporary store that survives the redirect
            navigator: Host navigation port
            callback: Receives the result of every completed redirect
            metadata_client: Optional authority discovery client
            token_manager: Optional token endpoint client

        Raises:
            ConfigurationError: If no callback is supplied
            InvalidAuthorityError: If the configured authority is malformed
        """
        self.settings = settings
        self.authority = resolve_authority(
            settings.authority_or_default(), settings.validate_authority
        )
        self.auth_module = AuthorizationCodeModule(
            settings,
            self.authority,
            store,
            metadata_client=metadata_client,
            token_manager=token_manager,
        )
        self.controller = RedirectFlowController(
            self.auth_module, store, navigator, callback, settings
        )

    async def login(self, request: AuthenticationRequest | None = None) -> None:
        """Navigate away to sign in."""
        if request is None:
            request = AuthenticationRequest(scopes=list(self.settings.scopes))
        logger.info(
            f"Starting redirect login against {self.authority.canonical_url}"
        )
        await self.controller.initiate(request)

    async def handle_redirect(self) -> AuthResult | None:
        """Complete a redirect if the current page load is returning from one."""
        return await self.controller.resume_from_location()

    async def close(self) -> None:
        """Close all service connections."""
        await self.auth_module.close()
