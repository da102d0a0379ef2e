"""Redirect flow controller.

Drives the authorization code flow across a full-page navigation:

    Idle -> NavigatingOut -> [reload] -> Returned -> Exchanging -> Completed | Failed

`initiate` checkpoints the origin page and the interaction guard in the
temporary store and navigates away. `resume` runs in the reloaded process,
rebuilds the flow from the store and finishes the exchange. Exchange
failures are delivered through the callback, never raised.
"""

from __future__ import annotations

import logging
from typing import Protocol

from authflow.client.models.errors import (
    ConfigurationError,
    EmptyHashError,
    EmptyRedirectTargetError,
    ExchangeError,
    InteractionInProgressError,
)
from authflow.client.models.flow import AuthenticationRequest, AuthorizationResponse
from authflow.redirect.config import RedirectSettings
from authflow.redirect.navigation import NavigationPort, fragment_of, strip_fragment
from authflow.redirect.results import (
    AuthCallback,
    AuthFailure,
    AuthResult,
    AuthSuccess,
    OneShotCompletion,
)
from authflow.redirect.storage import (
    InteractionStatus,
    PendingRedirectState,
    TemporaryCacheKeys,
    TemporaryStore,
)

logger = logging.getLogger(__name__)


class AuthCodeModule(Protocol):
    """Protocol engine the controller delegates URL building and exchange to."""

    async def create_login_url(self, request: AuthenticationRequest) -> str: ...

    def handle_fragment_response(
        self, location_hash: str
    ) -> AuthorizationResponse: ...

    async def acquire_token(self, response: AuthorizationResponse) -> AuthSuccess: ...


def _is_empty_hash(location_hash: str | None) -> bool:
    return not location_hash or not location_hash.strip().lstrip("#")


class RedirectFlowController:
    """Runs the redirect leg of the authorization code flow."""

    def __init__(
        self,
        auth_module: AuthCodeModule,
        store: TemporaryStore,
        navigator: NavigationPort,
        callback: AuthCallback | None,
        settings: RedirectSettings | None = None,
    ):
        if callback is None:
            raise ConfigurationError(
                "A redirect callback is required to receive the result of "
                "the redirect flow."
            )

        self._auth_module = auth_module
        self._store = store
        self._navigator = navigator
        self._callback = callback
        self._root_path = settings.root_path if settings else "/"
        self._navigate_to_login_request_url = (
            settings.navigate_to_login_request_url if settings else True
        )
        self._exchange_in_flight = False
        self._initiating = False

    async def initiate(self, request: AuthenticationRequest) -> None:
        """Start a login redirect.

        Raises:
            InteractionInProgressError: If another interaction is pending
            EmptyRedirectTargetError: If the authorization URL is empty
        """
        if self._initiating or PendingRedirectState.load(self._store).is_in_progress:
            raise InteractionInProgressError(
                "An interaction is already in progress; resume or cancel it first."
            )

        self._initiating = True
        try:
            self._store.set_item(
                TemporaryCacheKeys.ORIGIN_URI, self._navigator.current_url()
            )

            url_navigate = await self._auth_module.create_login_url(request)

            if not url_navigate or not url_navigate.strip():
                logger.info("Navigate url is empty")
                raise EmptyRedirectTargetError(
                    "Cannot navigate to an empty authorization URL."
                )

            # Another controller on the same store may have claimed the guard
            if PendingRedirectState.load(self._store).is_in_progress:
                raise InteractionInProgressError(
                    "Another redirect started while this one was being prepared."
                )

            self._store.set_item(
                TemporaryCacheKeys.INTERACTION_STATUS,
                InteractionStatus.IN_PROGRESS.value,
            )
            logger.debug(f"Navigate to: {url_navigate}")
            self._navigator.navigate_to(url_navigate)
        finally:
            self._initiating = False

    async def resume(
        self, location_hash: str, is_top_frame_reentry: bool = False
    ) -> AuthResult | None:
        """Resume the flow with the fragment the provider redirected back with.

        Args:
            location_hash: The `#...` fragment of the redirect URI
            is_top_frame_reentry: Forward the hash to the page that started
                the login instead of completing the flow here

        Returns:
            The delivered result, or None when the hash was only forwarded

        Raises:
            EmptyHashError: If `location_hash` is empty
            InteractionInProgressError: If an exchange is already in flight
        """
        if _is_empty_hash(location_hash):
            raise EmptyHashError(
                f"Redirect response hash is empty. Given hash: {location_hash!r}"
            )

        if is_top_frame_reentry:
            self._forward_to_origin(location_hash)
            return None

        return await self._complete(location_hash, clear_fragment=True)

    async def resume_from_location(self) -> AuthResult | None:
        """Resume from whatever the current page carries.

        A fragment with authorization response fields is the response. Any
        other fragment (a page anchor or a hash route) is left alone in
        favour of a hash forwarded by an earlier page load. Failing that, a
        leftover fragment is only taken as a response while an interaction
        is pending, so the stale guard is reported and released.

        Returns:
            The delivered result, or None when there was nothing to complete
            here
        """
        current_url = self._navigator.current_url()
        fragment = fragment_of(current_url)
        location_hash = f"#{fragment}" if fragment else None
        is_response = bool(location_hash) and (
            AuthorizationResponse.from_fragment(location_hash).has_response_fields()
        )

        if is_response:
            return await self.resume(location_hash, self._should_forward(current_url))

        stored_hash = self._store.get_item(TemporaryCacheKeys.RETURNED_HASH)
        if stored_hash:
            logger.debug("Resuming with hash forwarded from the redirect page")
            self._store.remove_item(TemporaryCacheKeys.RETURNED_HASH)
            return await self._complete(stored_hash, clear_fragment=False)

        if location_hash and PendingRedirectState.load(self._store).is_in_progress:
            logger.warning(
                f"Pending redirect found no response in fragment {location_hash!r}"
            )
            return await self.resume(location_hash)

        return None

    def cancel(self) -> None:
        """Forget a pending redirect that will never come back."""
        logger.info("Clearing pending redirect state")
        PendingRedirectState.clear(self._store)

    def _should_forward(self, current_url: str) -> bool:
        if not self._navigate_to_login_request_url:
            return False
        if not self._navigator.is_top_level_context():
            return True

        state = PendingRedirectState.load(self._store)
        if not state.has_valid_origin:
            return False
        return strip_fragment(current_url) != strip_fragment(state.origin_uri)

    def _forward_to_origin(self, location_hash: str) -> None:
        self._store.set_item(TemporaryCacheKeys.RETURNED_HASH, location_hash)

        if not self._navigator.is_top_level_context():
            logger.debug("Stored redirect hash for the top-level window")
            return

        state = PendingRedirectState.load(self._store)
        if state.has_valid_origin:
            self._navigator.navigate_to(state.origin_uri)
        else:
            logger.error(
                "Unable to get valid login request url from cache, "
                "redirecting to home page"
            )
            self._navigator.navigate_to(self._root_path)

    async def _complete(self, location_hash: str, clear_fragment: bool) -> AuthResult:
        if self._exchange_in_flight:
            raise InteractionInProgressError(
                "A redirect response is already being processed."
            )

        self._exchange_in_flight = True
        completion = OneShotCompletion(self._callback)
        try:
            if clear_fragment:
                self._navigator.clear_visible_fragment()
            result = await self._exchange(location_hash)
        finally:
            self._exchange_in_flight = False

        completion.deliver(result)
        return await completion

    async def _exchange(self, location_hash: str) -> AuthResult:
        try:
            self._store.remove_item(TemporaryCacheKeys.INTERACTION_STATUS)
            code_response = self._auth_module.handle_fragment_response(location_hash)
            success = await self._auth_module.acquire_token(code_response)
        except ExchangeError as e:
            logger.warning(f"Redirect flow failed: {e}")
            return AuthFailure(error=e)
        except Exception as e:
            logger.exception("Unexpected error completing redirect flow")
            error = ExchangeError(f"Failed to complete redirect flow: {e}")
            error.__cause__ = e
            return AuthFailure(error=error)
        finally:
            self._store.remove_item(TemporaryCacheKeys.ORIGIN_URI)
            self._store.remove_item(TemporaryCacheKeys.RETURNED_HASH)

        logger.info("Redirect flow completed")
        return success
