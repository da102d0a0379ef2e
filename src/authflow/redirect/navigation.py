"""Navigation port for the hosting page.

The controller never touches a window object directly; hosts implement this
protocol on top of whatever actually drives the page.
"""

from __future__ import annotations

from typing import Protocol
from urllib.parse import urlsplit, urlunsplit


class NavigationPort(Protocol):
    """The parts of the host's window the redirect flow needs."""

    def current_url(self) -> str:
        """Return the full URL of the current page, fragment included."""
        ...

    def navigate_to(self, url: str) -> None:
        """Navigate the whole document to `url`.

        Nothing after a successful call is guaranteed to run.
        """
        ...

    def is_top_level_context(self) -> bool:
        """Return True unless running inside a frame."""
        ...

    def clear_visible_fragment(self) -> None:
        """Remove the fragment from the visible location."""
        ...


def strip_fragment(url: str) -> str:
    return urlunsplit(urlsplit(url)._replace(fragment=""))


def fragment_of(url: str) -> str:
    return urlsplit(url).fragment
