"""Results of a resumed redirect flow and their one-shot delivery."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Union

from authflow.client.models.errors import AuthError, ExchangeError
from authflow.client.models.tokens import AccountInfo, TokenResponse


@dataclass(frozen=True)
class AuthSuccess:
    token: TokenResponse
    account: AccountInfo | None = None

    @property
    def access_token(self) -> str | None:
        return self.token.access_token


@dataclass(frozen=True)
class AuthFailure:
    error: ExchangeError

    @property
    def error_kind(self) -> str:
        return self.error.code

    @property
    def message(self) -> str:
        return str(self.error)


AuthResult = Union[AuthSuccess, AuthFailure]
AuthCallback = Callable[[Union[AuthError, None], Union[AuthSuccess, None]], None]


class OneShotCompletion:
    """Delivers one result to a callback and to awaiting code.

    Backed by an asyncio.Future, so a second delivery raises
    asyncio.InvalidStateError instead of reaching the callback twice.
    """

    def __init__(self, callback: AuthCallback):
        self._callback = callback
        self._future: asyncio.Future[AuthResult] = (
            asyncio.get_running_loop().create_future()
        )

    @property
    def done(self) -> bool:
        return self._future.done()

    def deliver(self, result: AuthResult) -> None:
        self._future.set_result(result)

        if isinstance(result, AuthSuccess):
            self._callback(None, result)
        else:
            self._callback(result.error, None)

    def __await__(self):
        return self._future.__await__()
