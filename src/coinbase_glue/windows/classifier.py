"""Window classifier: turns newly opened wallet windows into domain events.

The watcher appends handles to the pending queue; ``classify_pending``
drains the queue under the session lock, visits each window, and emits
exactly one event per recognized window. Unrecognized windows are logged
and skipped. Focus is restored before the lock is released.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from coinbase_glue.events import (
    DomainEvent,
    EventBus,
    RequestAccountsEvent,
    SendTransactionEvent,
    SignMessageEvent,
)
from coinbase_glue.exceptions import NoSuchWindowError
from coinbase_glue.session.browser import Session
from coinbase_glue.session.lock import SessionLock
from coinbase_glue.settings.config import UISettings, WalletSettings
from coinbase_glue.wallet import flows
from coinbase_glue.wallet import selectors as sel
from coinbase_glue.windows.focus import focused_window, restore_focus
from coinbase_glue.windows.intent import WindowIntent, classify_url

logger = logging.getLogger(__name__)


class WindowClassifier:
    """Classifies pending wallet windows and emits their events.

    Args:
        lock: The session lock.
        bus: Where domain events go.
        wallet: Wallet credentials (for unlocking prompts).
        ui: UI wait bounds.
    """

    def __init__(
        self,
        lock: SessionLock[Session],
        bus: EventBus,
        wallet: WalletSettings,
        ui: UISettings,
    ) -> None:
        self._lock = lock
        self._bus = bus
        self._wallet = wallet
        self._ui = ui
        self._pending: deque[str] = deque()

    # ------------------------------------------------------------------
    # Pending queue
    # ------------------------------------------------------------------

    def enqueue(self, handles: Iterable[str]) -> int:
        """Append handles not already pending. Returns how many were added."""
        added = 0
        for handle in handles:
            if handle not in self._pending:
                self._pending.append(handle)
                added += 1
        return added

    @property
    def pending(self) -> list[str]:
        """Handles waiting for the next classification pass."""
        return list(self._pending)

    def _drain(self) -> list[str]:
        batch = list(self._pending)
        self._pending.clear()
        return batch

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    async def classify_pending(self) -> None:
        """Classify every pending window under the session lock."""
        await self._lock.run_exclusive(self._classify_batch)

    async def _classify_batch(self, session: Session) -> None:
        batch = self._drain()
        if not batch:
            return

        current = await focused_window(session)
        try:
            for handle in batch:
                try:
                    await self._process(session, handle)
                except NoSuchWindowError:
                    logger.debug("Window %s disappeared", handle)
                    continue
        finally:
            await restore_focus(session, current)

    async def _process(self, session: Session, handle: str) -> None:
        logger.debug("Processing window %s", handle)
        await session.switch_to_window(handle)

        location = await session.current_url()
        classification = classify_url(location)

        event: DomainEvent
        if classification.intent is WindowIntent.REQUEST_ACCOUNTS:
            await self._unlock(session, sel.ALLOW_AUTHORIZE)
            event = RequestAccountsEvent(id=handle)
        elif classification.intent is WindowIntent.SIGN_MESSAGE:
            await self._unlock(session, sel.SIGN_MESSAGE_TEXT)
            message = await flows.read_message(session, self._ui)
            event = SignMessageEvent(id=handle, message=message)
        elif classification.intent is WindowIntent.SEND_TRANSACTION:
            await self._unlock(session, sel.TRANSACTION_TO)
            source, to, value = await flows.read_transaction(session, self._ui)
            event = SendTransactionEvent(id=handle, from_=source, to=to, data="", value=value)
        else:
            title = await session.title()
            logger.warning(
                "unknown event from window %r @ %s (%s, action=%s)",
                title,
                location,
                handle,
                classification.action,
            )
            return

        logger.debug("Window %s classified as %s (%s)", handle, classification.intent.value, classification.action)
        await self._bus.emit(event)

    async def _unlock(self, session: Session, landmark: str) -> None:
        await flows.unlock_if_locked(session, self._wallet.password, self._ui, landmark=landmark)
