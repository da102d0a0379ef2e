"""Tests for starting a login redirect.

Covers the checkpoint written before navigating away and the guards that
keep a broken or overlapping redirect from navigating.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from authflow.client.models.errors import (
    ConfigurationError,
    EmptyRedirectTargetError,
    InteractionInProgressError,
)
from authflow.client.models.flow import AuthenticationRequest
from authflow.redirect.handler import RedirectFlowController
from authflow.redirect.storage import (
    InteractionStatus,
    PendingRedirectState,
    TemporaryCacheKeys,
)


class TestConstruction:
    def test_missing_callback_raises_before_any_storage_write(
        self, auth_module, store, navigator
    ):
        # Act & Assert
        with pytest.raises(ConfigurationError):
            RedirectFlowController(auth_module, store, navigator, None)

        assert store.get_item(TemporaryCacheKeys.ORIGIN_URI) is None
        assert store.get_item(TemporaryCacheKeys.INTERACTION_STATUS) is None
        assert navigator.navigations == []


class TestInitiate:
    @pytest.fixture(autouse=True)
    def setup(self, auth_module, store, navigator, callback):
        self.auth_module = auth_module
        self.store = store
        self.navigator = navigator
        self.callback = callback
        self.controller = RedirectFlowController(
            auth_module, store, navigator, callback
        )
        self.request = AuthenticationRequest(scopes=["openid", "User.Read"])

    async def test_navigates_to_built_url_and_sets_guard(self):
        # Act
        await self.controller.initiate(self.request)

        # Assert
        self.auth_module.create_login_url.assert_awaited_once_with(self.request)
        assert self.navigator.navigations == [
            self.auth_module.create_login_url.return_value
        ]
        state = PendingRedirectState.load(self.store)
        assert state.origin_uri == "https://app.example/start"
        assert state.interaction_status is InteractionStatus.IN_PROGRESS
        self.callback.assert_not_called()

    async def test_origin_is_recorded_before_url_is_built(self):
        # Arrange
        seen_origin = []

        async def create_login_url(request):
            seen_origin.append(self.store.get_item(TemporaryCacheKeys.ORIGIN_URI))
            return "https://login.example/authorize"

        self.auth_module.create_login_url = AsyncMock(side_effect=create_login_url)

        # Act
        await self.controller.initiate(self.request)

        # Assert
        assert seen_origin == ["https://app.example/start"]

    @pytest.mark.parametrize("built_url", ["", "   ", None])
    async def test_empty_url_raises_without_navigation_or_guard(self, built_url):
        # Arrange
        self.auth_module.create_login_url.return_value = built_url

        # Act & Assert
        with pytest.raises(EmptyRedirectTargetError):
            await self.controller.initiate(self.request)

        assert self.navigator.navigations == []
        assert self.store.get_item(TemporaryCacheKeys.INTERACTION_STATUS) is None

    async def test_pending_interaction_rejects_new_initiate(self):
        # Arrange
        self.store.set_item(
            TemporaryCacheKeys.INTERACTION_STATUS, InteractionStatus.IN_PROGRESS.value
        )
        self.store.set_item(TemporaryCacheKeys.ORIGIN_URI, "https://app.example/first")

        # Act & Assert
        with pytest.raises(InteractionInProgressError):
            await self.controller.initiate(self.request)

        self.auth_module.create_login_url.assert_not_awaited()
        assert self.navigator.navigations == []
        assert (
            self.store.get_item(TemporaryCacheKeys.ORIGIN_URI)
            == "https://app.example/first"
        )

    async def test_overlapping_initiates_navigate_only_once(self):
        # Arrange
        release = asyncio.Event()

        async def create_login_url(request):
            await release.wait()
            return "https://login.example/authorize"

        self.auth_module.create_login_url = AsyncMock(side_effect=create_login_url)

        # Act
        first = asyncio.create_task(self.controller.initiate(self.request))
        second = asyncio.create_task(self.controller.initiate(self.request))
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(first, second, return_exceptions=True)

        # Assert
        assert self.navigator.navigations == ["https://login.example/authorize"]
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], InteractionInProgressError)

    async def test_overlapping_initiate_keeps_first_origin(self):
        # Arrange
        release = asyncio.Event()

        async def create_login_url(request):
            await release.wait()
            return "https://login.example/authorize"

        self.auth_module.create_login_url = AsyncMock(side_effect=create_login_url)
        first = asyncio.create_task(self.controller.initiate(self.request))
        await asyncio.sleep(0)
        self.navigator.url = "https://app.example/elsewhere"

        # Act & Assert
        with pytest.raises(InteractionInProgressError):
            await self.controller.initiate(self.request)

        release.set()
        await first
        assert self.auth_module.create_login_url.await_count == 1
        assert (
            self.store.get_item(TemporaryCacheKeys.ORIGIN_URI)
            == "https://app.example/start"
        )

    async def test_initiate_on_another_controller_loses_recheck(self):
        # Arrange - two controllers share one store
        release = asyncio.Event()

        async def slow_login_url(request):
            await release.wait()
            return "https://login.example/slow"

        other_navigator = type(self.navigator)()
        other = RedirectFlowController(
            self.auth_module, self.store, other_navigator, self.callback
        )
        self.auth_module.create_login_url = AsyncMock(side_effect=slow_login_url)
        slow = asyncio.create_task(self.controller.initiate(self.request))
        await asyncio.sleep(0)
        self.auth_module.create_login_url = AsyncMock(
            return_value="https://login.example/fast"
        )
        await other.initiate(self.request)

        # Act
        release.set()
        with pytest.raises(InteractionInProgressError):
            await slow

        # Assert
        assert other_navigator.navigations == ["https://login.example/fast"]
        assert self.navigator.navigations == []

    async def test_initiate_can_retry_after_empty_url(self):
        # Arrange
        self.auth_module.create_login_url = AsyncMock(return_value="")
        with pytest.raises(EmptyRedirectTargetError):
            await self.controller.initiate(self.request)
        self.auth_module.create_login_url = AsyncMock(
            return_value="https://login.example/authorize"
        )

        # Act
        await self.controller.initiate(self.request)

        # Assert
        assert self.navigator.navigations == ["https://login.example/authorize"]

    async def test_cancel_releases_guard(self):
        # Arrange
        await self.controller.initiate(self.request)

        # Act
        self.controller.cancel()

        # Assert
        state = PendingRedirectState.load(self.store)
        assert not state.is_in_progress
        assert state.origin_uri is None

        await self.controller.initiate(self.request)
        assert len(self.navigator.navigations) == 2
