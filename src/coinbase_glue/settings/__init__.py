"""Layered settings (TOML files + CBGLUE_* environment variables)."""

from __future__ import annotations

from coinbase_glue.settings.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
