"""Playwright-backed automation session with the wallet extension loaded.

Handles browser lifecycle, window bookkeeping and element interaction on
the focused window. The rest of the glue only talks to the ``Session``
protocol, so tests can swap in an in-memory fake.

NOTE ON WINDOW HANDLES:
Playwright exposes pages, not window ids. Each page gets a generated
handle the first time it is listed, and handles are never reused, even
after the page closes. A harness command that echoes a handle back can
therefore never land on a different window.

Chrome only loads unpacked extensions into a persistent, headed context,
so ``launch()`` uses ``launch_persistent_context`` with
``--load-extension``.
"""

from __future__ import annotations

import logging
import tempfile
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Protocol, runtime_checkable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from coinbase_glue.exceptions import NoSuchWindowError, UiTimeoutError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Capability surface
# ---------------------------------------------------------------------------


@runtime_checkable
class Session(Protocol):
    """Protocol for the single automation session.

    Element operations act on the currently focused window and take a CSS
    selector that identifies the element.
    """

    async def window_handles(self) -> list[str]:
        """Handles of every open window, in creation order."""
        ...

    async def current_window_handle(self) -> str:
        """Handle of the focused window. Raises ``NoSuchWindowError`` if it closed."""
        ...

    async def switch_to_window(self, handle: str) -> None:
        """Focus *handle*. Raises ``NoSuchWindowError`` if it is not open."""
        ...

    async def new_window(self) -> str:
        """Open and focus a blank window, returning its handle."""
        ...

    async def navigate(self, url: str) -> None:
        ...

    async def current_url(self) -> str:
        ...

    async def title(self) -> str:
        ...

    async def count(self, selector: str) -> int:
        """Number of elements currently matching *selector* (no waiting)."""
        ...

    async def wait_visible(self, selector: str, timeout_ms: int) -> None:
        """Wait until *selector* is visible. Raises ``UiTimeoutError``."""
        ...

    async def click(self, selector: str, timeout_ms: int) -> None:
        """Click *selector* once it is visible, enabled and stable."""
        ...

    async def type_text(self, selector: str, text: str, timeout_ms: int, *, submit: bool = False) -> None:
        """Fill *selector* with *text*, pressing Enter afterwards when *submit*."""
        ...

    async def text(self, selector: str, timeout_ms: int) -> str:
        """Rendered text of *selector*."""
        ...

    async def close(self) -> None:
        ...


# ---------------------------------------------------------------------------
# Playwright implementation
# ---------------------------------------------------------------------------


def _new_handle() -> str:
    return uuid.uuid4().hex[:12]


class BrowserSession:
    """Playwright implementation of ``Session``.

    Use ``BrowserSession.launch()`` to start a browser; the constructor only
    wraps an existing persistent context (handy for tests).

    Args:
        context: A Playwright ``BrowserContext``.
        playwright: The Playwright driver handle to stop on ``close()``.
    """

    def __init__(self, context: Any, playwright: Any = None) -> None:
        self._context = context
        self._playwright = playwright
        self._handles: dict[Any, str] = {}
        self._pages: dict[str, Any] = {}
        self._current: Any = None
        self._closed = False

        pages = self._open_pages()
        if pages:
            self._current = pages[0]

    @classmethod
    async def launch(
        cls,
        extension_path: str,
        *,
        browser_version: str = "",
        chrome_binary: str = "",
        user_data_dir: str = "",
        headless: bool = False,
        sandbox: bool = True,
        default_timeout_ms: int = 10_000,
    ) -> BrowserSession:
        """Start Chromium with the wallet extension and return the session.

        Args:
            extension_path: Directory of the unpacked extension.
            browser_version: Pinned browser build, recorded for diagnostics.
                Pin the binary itself with *chrome_binary*.
            chrome_binary: Explicit Chrome executable path.
            user_data_dir: Profile directory; a fresh temp dir when empty.
            headless: Run headless (extensions need Chrome's new headless mode).
            sandbox: Keep Chrome's sandbox enabled.
            default_timeout_ms: Default Playwright timeout for every page.
        """
        from playwright.async_api import async_playwright

        if not extension_path:
            raise ValueError("extension_path is required to load the wallet extension")

        args = [
            f"--disable-extensions-except={extension_path}",
            f"--load-extension={extension_path}",
        ]
        if not sandbox:
            args.extend(["--no-sandbox", "--disable-setuid-sandbox"])

        launch_opts: dict[str, Any] = {"headless": headless, "args": args}
        if chrome_binary:
            launch_opts["executable_path"] = chrome_binary
        if headless:
            launch_opts["channel"] = "chromium"

        profile_dir = user_data_dir or tempfile.mkdtemp(prefix="coinbase-glue-")

        pw = await async_playwright().start()
        try:
            context = await pw.chromium.launch_persistent_context(profile_dir, **launch_opts)
        except Exception:
            await pw.stop()
            raise
        context.set_default_timeout(default_timeout_ms)

        logger.info(
            "Browser started (headless=%s, version=%s, profile=%s)",
            headless,
            browser_version or "bundled",
            profile_dir,
        )
        return cls(context, pw)

    # ------------------------------------------------------------------
    # Window bookkeeping
    # ------------------------------------------------------------------

    def _open_pages(self) -> list[Any]:
        pages = [p for p in self._context.pages if not p.is_closed()]
        for page in pages:
            if page not in self._handles:
                handle = _new_handle()
                self._handles[page] = handle
                self._pages[handle] = page
        for page in [p for p in self._handles if p.is_closed()]:
            self._pages.pop(self._handles.pop(page), None)
        return pages

    def _page(self) -> Any:
        if self._current is None or self._current.is_closed():
            raise NoSuchWindowError(self._handles.get(self._current))
        return self._current

    async def window_handles(self) -> list[str]:
        """Handles of every open window, in creation order."""
        return [self._handles[p] for p in self._open_pages()]

    async def current_window_handle(self) -> str:
        """Handle of the focused window."""
        return self._handles[self._page()]

    async def switch_to_window(self, handle: str) -> None:
        """Focus the window identified by *handle*."""
        self._open_pages()
        page = self._pages.get(handle)
        if page is None or page.is_closed():
            raise NoSuchWindowError(handle)
        self._current = page
        try:
            await page.bring_to_front()
        except PlaywrightError as e:
            if page.is_closed():
                raise NoSuchWindowError(handle) from e
            raise

    async def new_window(self) -> str:
        """Open a new window, focus it and return its handle."""
        page = await self._context.new_page()
        self._open_pages()
        self._current = page
        return self._handles[page]

    @contextmanager
    def _page_errors(self, page: Any, selector: str | None = None, timeout_ms: int = 0) -> Iterator[None]:
        """Map Playwright failures on *page* to glue errors.

        A page that closed under the call becomes ``NoSuchWindowError``; an
        expired wait on *selector* becomes ``UiTimeoutError``.
        """
        try:
            yield
        except PlaywrightError as e:
            if page.is_closed():
                raise NoSuchWindowError(self._handles.get(page)) from e
            if selector is not None and isinstance(e, PlaywrightTimeout):
                raise UiTimeoutError(selector, timeout_ms) from e
            raise

    # ------------------------------------------------------------------
    # Navigation / page information
    # ------------------------------------------------------------------

    async def navigate(self, url: str) -> None:
        """Navigate the focused window to *url*."""
        page = self._page()
        with self._page_errors(page):
            await page.goto(url)
        logger.debug("Navigated to: %s", url)

    async def current_url(self) -> str:
        return self._page().url

    async def title(self) -> str:
        page = self._page()
        with self._page_errors(page):
            return await page.title()

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    async def count(self, selector: str) -> int:
        """Number of elements currently matching *selector*."""
        page = self._page()
        with self._page_errors(page):
            return await page.locator(selector).count()

    async def wait_visible(self, selector: str, timeout_ms: int) -> None:
        """Wait until the first match of *selector* is visible."""
        page = self._page()
        with self._page_errors(page, selector, timeout_ms):
            await page.locator(selector).first.wait_for(state="visible", timeout=timeout_ms)

    async def click(self, selector: str, timeout_ms: int) -> None:
        """Click the first match of *selector* once it is actionable."""
        page = self._page()
        with self._page_errors(page, selector, timeout_ms):
            await page.locator(selector).first.click(timeout=timeout_ms)

    async def type_text(self, selector: str, text: str, timeout_ms: int, *, submit: bool = False) -> None:
        """Fill the first match of *selector* with *text*."""
        page = self._page()
        element = page.locator(selector).first
        with self._page_errors(page, selector, timeout_ms):
            await element.fill(text, timeout=timeout_ms)
            if submit:
                await element.press("Enter", timeout=timeout_ms)

    async def text(self, selector: str, timeout_ms: int) -> str:
        """Rendered text of the first match of *selector*."""
        page = self._page()
        with self._page_errors(page, selector, timeout_ms):
            return await page.locator(selector).first.inner_text(timeout=timeout_ms)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the browser and stop the Playwright driver."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._context.close()
        except Exception as e:
            logger.warning("Browser close error (non-fatal): %s", e)
        finally:
            self._current = None
            self._handles.clear()
            self._pages.clear()
            if self._playwright is not None:
                await self._playwright.stop()
        logger.info("Browser stopped")
