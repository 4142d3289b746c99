"""The automation session and the lock that serializes access to it."""

from __future__ import annotations

from coinbase_glue.session.browser import BrowserSession, Session
from coinbase_glue.session.lock import SessionLock

__all__ = ["BrowserSession", "Session", "SessionLock"]
