from unittest.mock import AsyncMock, MagicMock

import pytest

from authflow.client.models.flow import AuthorizationResponse
from authflow.client.models.tokens import AccountInfo, TokenResponse
from authflow.redirect.navigation import strip_fragment
from authflow.redirect.results import AuthSuccess
from authflow.redirect.storage import MemoryStore

AUTHORIZE_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize?x=1"


class FakeNavigator:
    """In-memory stand-in for the host window."""

    def __init__(self, url: str = "https://app.example/start", top_level: bool = True):
        self.url = url
        self.top_level = top_level
        self.navigations: list[str] = []
        self.fragment_cleared = False

    def current_url(self) -> str:
        return self.url

    def navigate_to(self, url: str) -> None:
        self.navigations.append(url)

    def is_top_level_context(self) -> bool:
        return self.top_level

    def clear_visible_fragment(self) -> None:
        self.fragment_cleared = True
        self.url = strip_fragment(self.url)


def make_success() -> AuthSuccess:
    return AuthSuccess(
        token=TokenResponse(access_token="access-token-xyz", expires_in=3600),
        account=AccountInfo(home_account_id="oid-1.tid-1", username="ada@example.com"),
    )


def make_auth_module() -> MagicMock:
    module = MagicMock()
    module.create_login_url = AsyncMock(return_value=AUTHORIZE_URL)
    module.handle_fragment_response = MagicMock(
        return_value=AuthorizationResponse(code="auth-code-456", state="state-123")
    )
    module.acquire_token = AsyncMock(return_value=make_success())
    return module


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def navigator() -> FakeNavigator:
    return FakeNavigator()


@pytest.fixture
def auth_module() -> MagicMock:
    return make_auth_module()


@pytest.fixture
def callback() -> MagicMock:
    return MagicMock()
