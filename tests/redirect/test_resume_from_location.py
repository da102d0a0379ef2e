"""Tests for picking up a redirect response from the current page."""

import pytest

from authflow.client.models.errors import StateValidationError
from authflow.redirect.config import RedirectSettings
from authflow.redirect.handler import RedirectFlowController
from authflow.redirect.results import AuthFailure
from authflow.redirect.storage import InteractionStatus, TemporaryCacheKeys

HASH = "#code=auth-code-456&state=state-123"


class TestResumeFromLocation:
    @pytest.fixture(autouse=True)
    def setup(self, auth_module, store, navigator, callback):
        self.auth_module = auth_module
        self.store = store
        self.navigator = navigator
        self.callback = callback
        self.controller = RedirectFlowController(
            auth_module, store, navigator, callback
        )
        store.set_item(TemporaryCacheKeys.ORIGIN_URI, "https://app.example/start")
        store.set_item(
            TemporaryCacheKeys.INTERACTION_STATUS, InteractionStatus.IN_PROGRESS.value
        )

    async def test_nothing_to_resume(self):
        # Act
        result = await self.controller.resume_from_location()

        # Assert
        assert result is None
        self.callback.assert_not_called()
        assert self.navigator.navigations == []

    async def test_redirect_page_forwards_to_origin(self):
        # Arrange
        self.navigator.url = f"https://app.example/redirect{HASH}"

        # Act
        result = await self.controller.resume_from_location()

        # Assert
        assert result is None
        assert self.navigator.navigations == ["https://app.example/start"]
        assert self.store.get_item(TemporaryCacheKeys.RETURNED_HASH) == HASH
        self.callback.assert_not_called()

    async def test_origin_page_completes_with_forwarded_hash(self):
        # Arrange - the page load after forwarding carries no fragment
        self.store.set_item(TemporaryCacheKeys.RETURNED_HASH, HASH)

        # Act
        result = await self.controller.resume_from_location()

        # Assert
        assert result is self.auth_module.acquire_token.return_value
        self.auth_module.handle_fragment_response.assert_called_once_with(HASH)
        self.callback.assert_called_once_with(None, result)
        assert self.store.get_item(TemporaryCacheKeys.RETURNED_HASH) is None
        assert self.store.get_item(TemporaryCacheKeys.INTERACTION_STATUS) is None

    async def test_fragment_on_origin_page_completes_directly(self):
        # Arrange
        self.navigator.url = f"https://app.example/start{HASH}"

        # Act
        result = await self.controller.resume_from_location()

        # Assert
        assert result is self.auth_module.acquire_token.return_value
        assert self.navigator.navigations == []
        assert self.navigator.fragment_cleared

    async def test_framed_page_only_stores_hash(self):
        # Arrange
        self.navigator.url = f"https://app.example/start{HASH}"
        self.navigator.top_level = False

        # Act
        result = await self.controller.resume_from_location()

        # Assert
        assert result is None
        assert self.navigator.navigations == []
        assert self.store.get_item(TemporaryCacheKeys.RETURNED_HASH) == HASH
        self.callback.assert_not_called()

    async def test_forwarding_disabled_completes_on_redirect_page(self):
        # Arrange
        settings = RedirectSettings(
            client_id="client-456",
            redirect_uri="https://app.example/redirect",
            navigate_to_login_request_url=False,
        )
        controller = RedirectFlowController(
            self.auth_module, self.store, self.navigator, self.callback, settings
        )
        self.navigator.url = f"https://app.example/redirect{HASH}"

        # Act
        result = await controller.resume_from_location()

        # Assert
        assert result is self.auth_module.acquire_token.return_value
        assert self.navigator.navigations == []
        self.callback.assert_called_once()

    async def test_hash_route_on_origin_uses_forwarded_hash(self):
        # Arrange - a hash-routed app reloads its origin with its own route
        self.store.set_item(TemporaryCacheKeys.ORIGIN_URI, "https://app.example/#/home")
        self.store.set_item(TemporaryCacheKeys.RETURNED_HASH, HASH)
        self.navigator.url = "https://app.example/#/home"

        # Act
        result = await self.controller.resume_from_location()

        # Assert
        assert result is self.auth_module.acquire_token.return_value
        self.auth_module.handle_fragment_response.assert_called_once_with(HASH)
        self.callback.assert_called_once_with(None, result)
        assert self.navigator.url == "https://app.example/#/home"
        assert not self.navigator.fragment_cleared

    async def test_leftover_fragment_releases_pending_guard(self):
        # Arrange - the provider never answered, the page reloaded on an anchor
        self.auth_module.handle_fragment_response.side_effect = StateValidationError(
            "State parameter mismatch"
        )
        self.navigator.url = "https://app.example/start#section-2"

        # Act
        result = await self.controller.resume_from_location()

        # Assert
        assert isinstance(result, AuthFailure)
        self.auth_module.handle_fragment_response.assert_called_once_with(
            "#section-2"
        )
        assert self.store.get_item(TemporaryCacheKeys.INTERACTION_STATUS) is None


class TestResumeFromLocationWithoutPendingInteraction:
    @pytest.fixture(autouse=True)
    def setup(self, auth_module, store, navigator, callback):
        self.auth_module = auth_module
        self.store = store
        self.navigator = navigator
        self.callback = callback
        self.controller = RedirectFlowController(
            auth_module, store, navigator, callback
        )

    @pytest.mark.parametrize(
        "url", ["https://app.example/docs#section-2", "https://app.example/#/home"]
    )
    async def test_plain_fragment_is_ignored(self, url):
        # Arrange
        self.navigator.url = url

        # Act
        result = await self.controller.resume_from_location()

        # Assert
        assert result is None
        self.callback.assert_not_called()
        self.auth_module.handle_fragment_response.assert_not_called()
        assert self.navigator.url == url
        assert self.navigator.navigations == []

    async def test_response_fragment_without_login_still_fails(self):
        # Arrange
        self.auth_module.handle_fragment_response.side_effect = StateValidationError(
            "State parameter mismatch"
        )
        self.navigator.url = "https://app.example/start#code=stolen&state=forged"

        # Act
        result = await self.controller.resume_from_location()

        # Assert
        assert isinstance(result, AuthFailure)
        assert result.error_kind == "state_mismatch"
        self.callback.assert_called_once_with(result.error, None)
