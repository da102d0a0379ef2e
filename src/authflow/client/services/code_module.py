"""Authorization code protocol engine.

Builds authorization URLs, parses fragment responses and exchanges codes for
tokens. Everything the token request needs later (state, PKCE verifier,
nonce, scopes) is cached in the temporary store before the redirect leaves,
because the process that resumes the flow is not the one that started it.
"""

from __future__ import annotations

import logging

from authflow.authority.metadata import AuthorityMetadataClient
from authflow.authority.models import AuthorityDescriptor
from authflow.client.models.errors import (
    AuthorizationResponseError,
    PKCEError,
    ProviderError,
    TokenError,
)
from authflow.client.models.flow import (
    AuthenticationRequest,
    AuthorizationRequest,
    AuthorizationResponse,
)
from authflow.client.models.tokens import AccountInfo, TokenRequest
from authflow.client.primitives.pkce import PKCEManager
from authflow.client.services.security import (
    generate_nonce,
    generate_state,
    validate_nonce,
    validate_state,
)
from authflow.client.services.tokens import OAuth2TokenManager
from authflow.redirect.config import RedirectSettings
from authflow.redirect.results import AuthSuccess
from authflow.redirect.storage import TemporaryCacheKeys, TemporaryStore

logger = logging.getLogger(__name__)

_REQUEST_KEYS = (
    TemporaryCacheKeys.REQUEST_STATE,
    TemporaryCacheKeys.CODE_VERIFIER,
    TemporaryCacheKeys.NONCE,
    TemporaryCacheKeys.REQUEST_SCOPES,
)


class AuthorizationCodeModule:
    """Speaks the authorization code protocol against one authority.

    Handles:
    - Endpoint discovery for the configured authority
    - PKCE, state and nonce generation and caching
    - Fragment response parsing and state validation
    - Code-for-token exchange and nonce validation
    """

    def __init__(
        self,
        settings: RedirectSettings,
        authority: AuthorityDescriptor,
        store: TemporaryStore,
        metadata_client: AuthorityMetadataClient | None = None,
        token_manager: OAuth2TokenManager | None = None,
    ):
        self.settings = settings
        self.authority = authority
        self._store = store
        self._metadata = metadata_client or AuthorityMetadataClient(
            timeout=settings.timeout
        )
        self._token_manager = token_manager or OAuth2TokenManager(
            timeout=settings.timeout
        )
        self._pkce_manager = PKCEManager()

    async def create_login_url(self, request: AuthenticationRequest) -> str:
        """Build the authorization URL for a login redirect.

        Raises:
            DiscoveryError: If the authority endpoints cannot be discovered
            InvalidAuthorityError: If the authority fails validation
        """
        configuration = await self._metadata.get_configuration(self.authority)

        pkce_params = self._pkce_manager.generate_parameters()
        state = generate_state()
        nonce = generate_nonce()
        scope = request.scope_string()

        self._store.set_item(TemporaryCacheKeys.REQUEST_STATE, state)
        self._store.set_item(TemporaryCacheKeys.CODE_VERIFIER, pkce_params.code_verifier)
        self._store.set_item(TemporaryCacheKeys.NONCE, nonce)
        self._store.set_item(TemporaryCacheKeys.REQUEST_SCOPES, scope)

        auth_request = AuthorizationRequest(
            authorization_endpoint=configuration.authorization_endpoint,
            client_id=self.settings.client_id,
            redirect_uri=self.settings.redirect_uri,
            code_challenge=pkce_params.code_challenge,
            code_challenge_method=pkce_params.code_challenge_method,
            state=state,
            nonce=nonce,
            scope=scope,
            prompt=request.prompt,
            login_hint=request.login_hint,
            extra_query_parameters=request.extra_query_parameters,
        )

        logger.info(
            f"Generated authorization URL for client {self.settings.client_id}"
        )
        return auth_request.build_authorization_url()

    def handle_fragment_response(self, location_hash: str) -> AuthorizationResponse:
        """Parse and validate the fragment the provider redirected back with.

        A response whose state does not match leaves the cached request in
        place: it was not answering our request, and the genuine response
        may still arrive. Once the state matches, the request is finished
        either way and its cached values are dropped on failure.

        Raises:
            StateValidationError: If the state is missing or does not match
            ProviderError: If the provider returned an error
            AuthorizationResponseError: If no authorization code is present
        """
        response = AuthorizationResponse.from_fragment(location_hash)

        validate_state(
            self._store.get_item(TemporaryCacheKeys.REQUEST_STATE), response.state
        )

        if response.is_error():
            logger.warning(
                f"Redirect response contained error: {response.error} - "
                f"{response.error_description}"
            )
            self._clear_request()
            raise ProviderError(
                response.error, response.error_description, response.error_uri
            )

        if response.code is None:
            self._clear_request()
            raise AuthorizationResponseError("Missing authorization code")

        logger.info("Redirect response successful - received authorization code")
        return response

    async def acquire_token(self, response: AuthorizationResponse) -> AuthSuccess:
        """Exchange the authorization code for tokens.

        Raises:
            TokenError: If the verifier is gone or the exchange fails
            ProviderError: If the token endpoint returned an error
            NonceValidationError: If the ID token nonce does not match
        """
        try:
            code_verifier = self._store.get_item(TemporaryCacheKeys.CODE_VERIFIER)
            if code_verifier is None:
                raise TokenError("No cached code verifier for this redirect")
            try:
                pkce_params = self._pkce_manager.restore(code_verifier)
            except PKCEError as e:
                raise TokenError(f"Cached code verifier is unusable: {e}") from e

            configuration = await self._metadata.get_configuration(self.authority)

            token_request = TokenRequest(
                token_endpoint=configuration.token_endpoint,
                code=response.code,
                redirect_uri=self.settings.redirect_uri,
                client_id=self.settings.client_id,
                code_verifier=pkce_params.code_verifier,
                scope=self._store.get_item(TemporaryCacheKeys.REQUEST_SCOPES),
            )
            token_response = await self._token_manager.exchange_code_for_token(
                token_request
            )

            if not token_response.is_success():
                raise ProviderError(
                    token_response.error or "unknown_error",
                    token_response.error_description,
                    token_response.error_uri,
                )

            account = None
            try:
                claims = token_response.id_token_claims()
            except ValueError as e:
                raise TokenError(f"Malformed ID token: {e}") from e
            if claims is not None:
                validate_nonce(
                    self._store.get_item(TemporaryCacheKeys.NONCE), claims.get("nonce")
                )
                account = AccountInfo.from_claims(claims)

            return AuthSuccess(token=token_response, account=account)
        finally:
            self._clear_request()

    def _clear_request(self) -> None:
        for key in _REQUEST_KEYS:
            self._store.remove_item(key)

    async def close(self) -> None:
        await self._metadata.close()
        await self._token_manager.close()
