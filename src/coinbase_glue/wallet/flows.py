"""Multi-step wallet UI flows run on the focused window.

All functions expect the caller to hold the session lock and leave focus
where it is. UI waits that expire raise ``UiTimeoutError``; nothing here
retries.
"""

from __future__ import annotations

import asyncio
import logging

from coinbase_glue.session.browser import Session
from coinbase_glue.settings.config import UISettings, WalletSettings
from coinbase_glue.units import extract_amount, parse_units
from coinbase_glue.wallet import selectors as sel

logger = logging.getLogger(__name__)


async def click_when_visible(session: Session, selector: str, timeout_ms: int) -> None:
    """Wait for *selector* to be visible, then click it."""
    await session.wait_visible(selector, timeout_ms)
    await session.click(selector, timeout_ms)


async def type_when_visible(
    session: Session, selector: str, text: str, timeout_ms: int, *, submit: bool = False
) -> None:
    """Wait for *selector* to be visible, then type *text* into it."""
    await session.wait_visible(selector, timeout_ms)
    await session.type_text(selector, text, timeout_ms, submit=submit)


async def unlock_if_locked(
    session: Session,
    password: str,
    ui: UISettings,
    *,
    landmark: str | None = None,
) -> bool:
    """Enter *password* if the focused window shows the lock screen.

    A no-op when no unlock prompt is present. With a *landmark* the window
    is first given ``ui.ready_timeout_ms`` to render either the lock screen
    or the landmark, so a prompt that is still loading is not mistaken for
    an unlocked one.

    Returns:
        ``True`` if the password was entered.
    """
    if landmark:
        await session.wait_visible(f"{sel.UNLOCK_WITH_PASSWORD}, {landmark}", ui.ready_timeout_ms)

    if await session.count(sel.UNLOCK_WITH_PASSWORD) <= 0:
        return False

    logger.debug("Unlocking wallet")
    await type_when_visible(session, sel.UNLOCK_WITH_PASSWORD, password, ui.visible_timeout_ms, submit=True)
    await asyncio.sleep(ui.unlock_settle_ms / 1000)
    return True


async def perform_setup(session: Session, wallet: WalletSettings, ui: UISettings) -> None:
    """Import the test wallet from its recovery phrase and set its password.

    Finishes once the post-setup home screen (notification bell) is visible.
    """
    timeout = ui.visible_timeout_ms

    await session.navigate(wallet.extension_url)

    await click_when_visible(session, sel.IMPORT_EXISTING_WALLET, timeout)
    await click_when_visible(session, sel.IMPORT_RECOVERY_PHRASE, timeout)
    await type_when_visible(session, sel.SECRET_INPUT, wallet.recovery_phrase, timeout)
    await click_when_visible(session, sel.IMPORT_WALLET, timeout)

    await type_when_visible(session, sel.SET_PASSWORD, wallet.password, timeout)
    await type_when_visible(session, sel.SET_PASSWORD_VERIFY, wallet.password, timeout)
    await click_when_visible(session, sel.TERMS_AND_PRIVACY, timeout)
    await click_when_visible(session, sel.PASSWORD_CONTINUE, timeout)

    await session.wait_visible(sel.NOTIFICATION_BELL, ui.ready_timeout_ms)
    logger.info("Wallet imported and unlocked")


async def read_message(session: Session, ui: UISettings) -> str:
    """Text of the message the focused signature prompt asks to sign."""
    await session.wait_visible(sel.SIGN_MESSAGE_TEXT, ui.visible_timeout_ms)
    return await session.text(sel.SIGN_MESSAGE_TEXT, ui.visible_timeout_ms)


async def read_transaction(session: Session, ui: UISettings) -> tuple[str, str, int]:
    """Read ``(from, to, value)`` off the focused transaction prompt.

    ``value`` is the displayed total cost converted to base units; a cost
    with no number in it counts as zero.
    """
    timeout = ui.visible_timeout_ms

    await session.wait_visible(sel.TRANSACTION_TO, timeout)
    to = (await session.text(sel.TRANSACTION_TO, timeout)).strip()
    source = (await session.text(sel.TRANSACTION_FROM, timeout)).strip()
    cost = await session.text(sel.TRANSACTION_COST, timeout)

    value = parse_units(extract_amount(cost), ui.value_decimals)
    return source, to, value
