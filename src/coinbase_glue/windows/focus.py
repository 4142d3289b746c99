"""Record and restore window focus around locked operations."""

from __future__ import annotations

import logging

from coinbase_glue.exceptions import NoSuchWindowError
from coinbase_glue.session.browser import Session

logger = logging.getLogger(__name__)


async def focused_window(session: Session) -> str | None:
    """Handle of the focused window, or ``None`` if that window is gone."""
    try:
        return await session.current_window_handle()
    except NoSuchWindowError:
        return None


async def restore_focus(session: Session, handle: str | None) -> None:
    """Focus *handle* again if one was recorded and it is still open."""
    if handle is None:
        return
    try:
        await session.switch_to_window(handle)
    except NoSuchWindowError:
        logger.debug("Previously focused window %s closed; leaving focus as is", handle)
