"""Glue test configuration — shared fixtures and an in-memory session."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Callable

import pytest

from coinbase_glue.exceptions import NoSuchWindowError, UiTimeoutError
from coinbase_glue.settings.config import UISettings, WalletSettings


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from coinbase_glue.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def anyio_backend() -> str:
    """The glue is built on asyncio."""
    return "asyncio"


@pytest.fixture()
def ui() -> UISettings:
    """UI bounds short enough to keep timeout tests fast."""
    return UISettings(
        visible_timeout_ms=50,
        ready_timeout_ms=50,
        new_window_timeout_ms=100,
        new_window_poll_ms=5,
        unlock_settle_ms=0,
    )


@pytest.fixture()
def wallet() -> WalletSettings:
    return WalletSettings(extension_url="chrome-extension://wallet/index.html", password="pw")


# ---------------------------------------------------------------------------
# Fake session
# ---------------------------------------------------------------------------


@dataclass
class FakeWindow:
    """One window of the fake browser: a URL plus the selectors it shows."""

    url: str = "about:blank"
    title: str = ""
    elements: dict[str, str] = field(default_factory=dict)


class FakeSession:
    """In-memory ``Session`` that records every interaction.

    Windows are plain ``FakeWindow`` records. ``on_click`` hooks let a test
    react to a click (for instance by opening another window).
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.windows: dict[str, FakeWindow] = {}
        self.focused: str | None = None
        self.clicks: list[tuple[str | None, str]] = []
        self.typed: list[tuple[str | None, str, str]] = []
        self.visits: list[str] = []
        self.on_click: dict[str, Callable[[FakeSession], None]] = {}
        self.closed = False
        self.focused = self.open_window("about:blank")

    # test helpers ------------------------------------------------------

    def open_window(self, url: str, title: str = "", elements: dict[str, str] | None = None) -> str:
        handle = f"w{next(self._ids)}"
        self.windows[handle] = FakeWindow(url=url, title=title, elements=dict(elements or {}))
        return handle

    def close_window(self, handle: str) -> None:
        self.windows.pop(handle, None)

    def _window(self) -> FakeWindow:
        if self.focused not in self.windows:
            raise NoSuchWindowError(self.focused)
        return self.windows[self.focused]

    # Session protocol --------------------------------------------------

    async def window_handles(self) -> list[str]:
        return list(self.windows)

    async def current_window_handle(self) -> str:
        self._window()
        return self.focused

    async def switch_to_window(self, handle: str) -> None:
        if handle not in self.windows:
            raise NoSuchWindowError(handle)
        self.focused = handle
        self.visits.append(handle)

    async def new_window(self) -> str:
        self.focused = self.open_window("about:blank")
        return self.focused

    async def navigate(self, url: str) -> None:
        self._window().url = url

    async def current_url(self) -> str:
        return self._window().url

    async def title(self) -> str:
        return self._window().title

    async def count(self, selector: str) -> int:
        return 1 if selector in self._window().elements else 0

    async def wait_visible(self, selector: str, timeout_ms: int) -> None:
        elements = self._window().elements
        if not any(part.strip() in elements for part in selector.split(", ")):
            raise UiTimeoutError(selector, timeout_ms)

    async def click(self, selector: str, timeout_ms: int) -> None:
        await self.wait_visible(selector, timeout_ms)
        self.clicks.append((self.focused, selector))
        hook = self.on_click.get(selector)
        if hook is not None:
            hook(self)

    async def type_text(self, selector: str, text: str, timeout_ms: int, *, submit: bool = False) -> None:
        await self.wait_visible(selector, timeout_ms)
        self.typed.append((self.focused, selector, text))

    async def text(self, selector: str, timeout_ms: int) -> str:
        await self.wait_visible(selector, timeout_ms)
        return self._window().elements[selector]

    async def close(self) -> None:
        self.closed = True
        self.windows.clear()


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that drive a real browser")
