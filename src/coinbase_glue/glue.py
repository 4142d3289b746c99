"""Wallet glue: lifecycle and command surface for one wallet session.

``WalletGlue.create()`` launches the browser with the extension, starts the
window watcher and imports the test wallet. Afterwards the harness drives
it through the command methods (or ``handle_command`` for raw payloads)
and finishes with ``report()``.

Usage::

    bus = EventBus()
    bus.add_sink(JsonlSink(sys.stdout))
    glue = await WalletGlue.create(get_settings(), bus)
    await glue.launch("https://dapp.example/")
    ...
    payload = await glue.wait_for_completion()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from coinbase_glue.commands import (
    ActivateChain,
    RequestAccounts,
    SendTransaction,
    SignMessage,
    SignTransaction,
    SwitchEthereumChain,
)
from coinbase_glue.dispatcher import ActionDispatcher
from coinbase_glue.events import EventBus
from coinbase_glue.exceptions import ActionNotImplementedError, SetupError, UnknownCommandError
from coinbase_glue.session.browser import BrowserSession, Session
from coinbase_glue.session.lock import SessionLock
from coinbase_glue.settings.config import Settings
from coinbase_glue.wallet import flows
from coinbase_glue.wallet import selectors as sel
from coinbase_glue.windows.classifier import WindowClassifier
from coinbase_glue.windows.watcher import WindowWatcher

logger = logging.getLogger(__name__)


class WalletGlue:
    """Owns the automation session and everything that touches it.

    The constructor wires components around an already-open session and
    starts the watcher; ``create()`` is the normal entry point.

    Args:
        session: The automation session (owned from here on).
        settings: Resolved settings.
        bus: Destination for domain events.
    """

    def __init__(self, session: Session, settings: Settings, bus: EventBus) -> None:
        self._settings = settings
        self._bus = bus
        self._lock: SessionLock[Session] = SessionLock(session)
        self._classifier = WindowClassifier(self._lock, bus, settings.wallet, settings.ui)
        self._dispatcher = ActionDispatcher(self._lock, settings.wallet, settings.ui)
        self._watcher = WindowWatcher(
            self._lock,
            self._classifier.enqueue,
            self._classifier.classify_pending,
            poll_interval_ms=settings.watcher.poll_interval_ms,
        )
        self._stopping: asyncio.Future | None = None
        self._reported = False
        self._completion: asyncio.Future = asyncio.get_running_loop().create_future()

        self._watcher.start()

    @classmethod
    async def create(cls, settings: Settings, bus: EventBus, session: Session | None = None) -> WalletGlue:
        """Launch the browser (unless *session* is given) and set up the wallet.

        Raises:
            SetupError: If the wallet import flow fails. The session is
                closed before the error propagates.
        """
        if session is None:
            b = settings.browser
            session = await BrowserSession.launch(
                b.extension_path,
                browser_version=b.browser_version,
                chrome_binary=b.chrome_binary,
                user_data_dir=b.user_data_dir,
                headless=b.headless,
                sandbox=b.sandbox,
                default_timeout_ms=b.default_timeout_ms,
            )

        glue = cls(session, settings, bus)
        try:
            await glue.setup()
        except Exception as e:
            logger.error("Wallet setup failed: %s", e)
            await glue.stop()
            raise SetupError(f"wallet setup failed: {e}") from e
        return glue

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def lock(self) -> SessionLock[Session]:
        return self._lock

    @property
    def classifier(self) -> WindowClassifier:
        return self._classifier

    @property
    def watcher(self) -> WindowWatcher:
        return self._watcher

    async def setup(self) -> None:
        """Import the test wallet and unlock it."""
        await self._lock.run_exclusive(
            lambda session: flows.perform_setup(session, self._settings.wallet, self._settings.ui)
        )

    async def launch(self, url: str) -> None:
        """Open the dapp at *url* and press its connect button."""

        async def operation(session: Session) -> None:
            await session.navigate(url)
            await flows.click_when_visible(session, sel.DAPP_CONNECT, self._settings.ui.visible_timeout_ms)

        await self._lock.run_exclusive(operation)

    async def stop(self) -> None:
        """Stop the watcher and close the session.

        Every caller, including concurrent ones, returns only once the
        session is closed.
        """
        if self._stopping is None:
            self._stopping = asyncio.ensure_future(self._shutdown())
        await asyncio.shield(self._stopping)

    async def _shutdown(self) -> None:
        self._watcher.stop()
        await self._lock.run_exclusive(lambda session: session.close())
        await self._watcher.wait_closed()
        logger.info("Wallet session closed")

    async def report(self, payload: Any) -> None:
        """Finish the run: stop the session, then resolve the completion signal.

        The first report wins. Later ones are logged and ignored, but still
        return only after the session is closed.
        """
        if self._reported:
            logger.warning("Ignoring duplicate report")
            await self.stop()
            return
        self._reported = True
        await self.stop()
        self._completion.set_result(payload)

    async def wait_for_completion(self) -> Any:
        """Wait for ``report()`` and return its payload."""
        return await asyncio.shield(self._completion)

    @property
    def completed(self) -> bool:
        return self._completion.done()

    @property
    def result(self) -> Any:
        """The reported payload, or None before ``report()``."""
        return self._completion.result() if self._completion.done() else None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def activate_chain(self, command: ActivateChain) -> None:
        await self._dispatcher.activate_chain(command)

    async def request_accounts(self, command: RequestAccounts) -> None:
        await self._dispatcher.respond_accounts(command)

    async def sign_message(self, command: SignMessage) -> None:
        await self._dispatcher.respond_message(command)

    async def send_transaction(self, command: SendTransaction) -> None:
        await self._dispatcher.respond_transaction(command)

    async def sign_transaction(self, command: SignTransaction) -> None:
        raise ActionNotImplementedError("signTransaction")

    async def switch_ethereum_chain(self, command: SwitchEthereumChain) -> None:
        raise ActionNotImplementedError("switchEthereumChain")

    def _routes(self) -> dict[str, tuple[type[BaseModel], Callable[[Any], Awaitable[None]]]]:
        return {
            "activateChain": (ActivateChain, self.activate_chain),
            "requestAccounts": (RequestAccounts, self.request_accounts),
            "signMessage": (SignMessage, self.sign_message),
            "sendTransaction": (SendTransaction, self.send_transaction),
            "signTransaction": (SignTransaction, self.sign_transaction),
            "switchEthereumChain": (SwitchEthereumChain, self.switch_ethereum_chain),
        }

    async def handle_command(self, kind: str, payload: dict[str, Any]) -> None:
        """Validate a raw harness payload and run the matching command.

        Raises:
            UnknownCommandError: If *kind* names no command.
            pydantic.ValidationError: If the payload is malformed, including
                an action outside approve/reject.
        """
        route = self._routes().get(kind)
        if route is None:
            raise UnknownCommandError(kind)
        model, handler = route
        await handler(model.model_validate(payload))
