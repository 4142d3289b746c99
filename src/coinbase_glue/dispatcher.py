"""Action dispatcher: carries harness commands out on the wallet UI.

Each operation takes the session lock, focuses the window the command
targets, works the UI and restores the previous focus in a ``finally``
block, so the next lock holder starts from the same window.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from coinbase_glue.commands import ActivateChain, ResponseAction, WindowCommand
from coinbase_glue.exceptions import NoSuchWindowError, UnsupportedActionError, WindowTimeoutError
from coinbase_glue.session.browser import Session
from coinbase_glue.session.lock import SessionLock
from coinbase_glue.settings.config import UISettings, WalletSettings
from coinbase_glue.wallet import flows
from coinbase_glue.wallet import selectors as sel
from coinbase_glue.windows.focus import focused_window, restore_focus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptControls:
    """Confirm/cancel controls of one kind of wallet prompt."""

    confirm: str
    cancel: str

    def for_action(self, action: object) -> str:
        """Selector to click for *action*.

        Raises:
            UnsupportedActionError: If *action* is not approve/reject.
        """
        if action == ResponseAction.APPROVE:
            return self.confirm
        if action == ResponseAction.REJECT:
            return self.cancel
        raise UnsupportedActionError(action)


ACCOUNTS_CONTROLS = PromptControls(confirm=sel.ALLOW_AUTHORIZE, cancel=sel.DENY_AUTHORIZE)
MESSAGE_CONTROLS = PromptControls(confirm=sel.REQUEST_CONFIRM, cancel=sel.REQUEST_CANCEL)
TRANSACTION_CONTROLS = PromptControls(confirm=sel.REQUEST_CONFIRM, cancel=sel.REQUEST_CANCEL)


class ActionDispatcher:
    """Executes approve/reject and network commands against the session.

    Args:
        lock: The session lock.
        wallet: Wallet URL and password.
        ui: UI wait bounds.
    """

    def __init__(self, lock: SessionLock[Session], wallet: WalletSettings, ui: UISettings) -> None:
        self._lock = lock
        self._wallet = wallet
        self._ui = ui

    # ------------------------------------------------------------------
    # Prompt responses
    # ------------------------------------------------------------------

    async def respond_accounts(self, command: WindowCommand) -> None:
        """Approve or reject a connect prompt."""
        await self._respond(command, ACCOUNTS_CONTROLS)

    async def respond_message(self, command: WindowCommand) -> None:
        """Approve or reject a signature prompt."""
        await self._respond(command, MESSAGE_CONTROLS)

    async def respond_transaction(self, command: WindowCommand) -> None:
        """Approve or reject a transaction prompt."""
        await self._respond(command, TRANSACTION_CONTROLS)

    async def _respond(self, command: WindowCommand, controls: PromptControls) -> None:
        # Resolve the control first so a bad action never reaches the UI.
        selector = controls.for_action(command.action)
        timeout = self._ui.visible_timeout_ms

        async def operation(session: Session) -> None:
            current = await focused_window(session)
            try:
                try:
                    await session.switch_to_window(command.id)
                except NoSuchWindowError:
                    logger.warning("Window %s is gone; dropping %s", command.id, type(command).__name__)
                    return
                await session.wait_visible(selector, timeout)
                await session.click(selector, timeout)
                logger.debug("Clicked %s in window %s", selector, command.id)
            finally:
                await restore_focus(session, current)

        await self._lock.run_exclusive(operation)

    # ------------------------------------------------------------------
    # Custom networks
    # ------------------------------------------------------------------

    async def activate_chain(self, command: ActivateChain) -> None:
        """Add a custom network through the wallet's settings screens."""
        await self._lock.run_exclusive(lambda session: self._activate_chain(session, command))

    async def _activate_chain(self, session: Session, command: ActivateChain) -> None:
        timeout = self._ui.visible_timeout_ms
        password = self._wallet.password

        current = await focused_window(session)
        try:
            await session.new_window()
            await session.navigate(self._wallet.extension_url)
            await flows.unlock_if_locked(session, password, self._ui, landmark=sel.SETTINGS_LINK)

            await flows.click_when_visible(session, sel.SETTINGS_LINK, timeout)
            await flows.click_when_visible(session, sel.NETWORKS_MENU, timeout)

            await session.wait_visible(sel.ADD_CUSTOM_NETWORK, timeout)
            # Adding a network opens its form in another window.
            before = set(await session.window_handles())
            await session.click(sel.ADD_CUSTOM_NETWORK, timeout)

            form = await self._wait_for_new_window(session, before)
            logger.debug("Switching to custom network window %s", form)
            await session.switch_to_window(form)
            await flows.unlock_if_locked(session, password, self._ui, landmark=sel.CUSTOM_NETWORK_NAME)

            await flows.type_when_visible(session, sel.CUSTOM_NETWORK_NAME, f"Test Chain {command.chain_id}", timeout)
            await flows.type_when_visible(session, sel.CUSTOM_NETWORK_RPC_URL, command.rpc_url, timeout)
            await flows.type_when_visible(session, sel.CUSTOM_NETWORK_CHAIN_ID, command.chain_id, timeout)
            await session.click(sel.CUSTOM_NETWORK_SAVE, timeout)
            logger.info("Added custom network %s (%s)", command.chain_id, command.rpc_url)
        finally:
            await restore_focus(session, current)

    async def _wait_for_new_window(self, session: Session, before: set[str]) -> str:
        """Poll until a handle not in *before* appears.

        Raises:
            WindowTimeoutError: If none shows up within ``new_window_timeout_ms``.
        """
        deadline = time.monotonic() + self._ui.new_window_timeout_ms / 1000
        while True:
            created = [h for h in await session.window_handles() if h not in before]
            if created:
                return created[0]
            if time.monotonic() >= deadline:
                raise WindowTimeoutError(self._ui.new_window_timeout_ms)
            await asyncio.sleep(self._ui.new_window_poll_ms / 1000)
