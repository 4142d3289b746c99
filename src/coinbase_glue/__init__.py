"""Coinbase Wallet glue: drives the wallet extension UI for a conformance-test harness."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("coinbase-glue")
except Exception:
    __version__ = "0.0.0"
