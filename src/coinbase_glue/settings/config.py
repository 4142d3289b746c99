"""Configuration loader for the wallet glue using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (where applicable)
  2. Environment variables (CBGLUE_* with __ for nesting)
  3. settings.local.toml
  4. settings.{env}.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("CBGLUE_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "CBGLUE_ENV"
DEFAULT_ENV = "local"


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class BrowserSettings(BaseSettings):
    """Playwright browser settings."""

    model_config = SettingsConfigDict(env_prefix="CBGLUE_BROWSER__")

    extension_path: str = ""
    chrome_binary: str = ""
    browser_version: str = ""
    user_data_dir: str = ""
    headless: bool = False
    default_timeout_ms: int = 10_000
    sandbox: bool = True


class WalletSettings(BaseSettings):
    """Wallet extension location and the throwaway test credentials."""

    model_config = SettingsConfigDict(env_prefix="CBGLUE_WALLET__")

    extension_url: str = "chrome-extension://hnfanknocfeofbddgcijnmhnfnkdnaad/index.html?inPageRequest=false"
    password: str = "ethereum1"
    recovery_phrase: str = "basket cradle actor pizza similar liar suffer another all fade flag brave"


class WatcherSettings(BaseSettings):
    """Window watcher polling."""

    model_config = SettingsConfigDict(env_prefix="CBGLUE_WATCHER__")

    poll_interval_ms: int = Field(default=500, ge=10)


class UISettings(BaseSettings):
    """Bounds for UI waits inside locked operations."""

    model_config = SettingsConfigDict(env_prefix="CBGLUE_UI__")

    visible_timeout_ms: int = 2_000
    ready_timeout_ms: int = 10_000
    new_window_timeout_ms: int = 10_000
    new_window_poll_ms: int = 100
    unlock_settle_ms: int = 1_000
    value_decimals: int = 18


class EventSettings(BaseSettings):
    """Which event sinks the CLI attaches."""

    model_config = SettingsConfigDict(env_prefix="CBGLUE_EVENTS__")

    jsonl: bool = True
    logging: bool = True


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root glue settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="CBGLUE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    wallet: WalletSettings = Field(default_factory=WalletSettings)
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    ui: UISettings = Field(default_factory=UISettings)
    events: EventSettings = Field(default_factory=EventSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize a relative extension path against project_root."""
        ext = self.browser.extension_path
        if ext and not Path(ext).is_absolute():
            self.browser.extension_path = str(self.project_root / ext)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
