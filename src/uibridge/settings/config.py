"""Configuration loader for UIBridge using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (where applicable)
  2. Environment variables (UIBRIDGE_* with __ for nesting)
  3. settings.local.toml
  4. settings.<env>.toml
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
PROJECT_ROOT = Path(os.getenv("UIBRIDGE_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "UIBRIDGE_ENV"
DEFAULT_ENV = "local"

DEFAULT_RASTERIZER_SOURCES = [
    "https://unpkg.com/html2canvas@1.4.1/dist/html2canvas.min.js",
    "https://cdn.jsdelivr.net/npm/html2canvas@1.4.1/dist/html2canvas.min.js",
    "https://cdnjs.cloudflare.com/ajax/libs/html2canvas/1.4.1/html2canvas.min.js",
    "https://unpkg.com/html2canvas@latest/dist/html2canvas.min.js",
]


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


class BridgeSettings(BaseSettings):
    """Execution core settings."""

    model_config = SettingsConfigDict(env_prefix="UIBRIDGE_BRIDGE__")

    debug: bool = False
    version: str = "1.3.2"
    commands: list[str] = Field(default_factory=lambda: ["click", "screenshot", "help"])
    history_limit: int = 50


class RemoteSettings(BaseSettings):
    """Page-agent side of the remote control channel."""

    model_config = SettingsConfigDict(env_prefix="UIBRIDGE_REMOTE__")

    enabled: bool = False
    server_url: str = "http://localhost:3002"
    poll_interval_ms: int = 500
    heartbeat_interval_sec: float = 30.0
    auto_start_polling: bool = True
    request_timeout_sec: float = 10.0


class ScreenshotSettings(BaseSettings):
    """Default screenshot save configuration."""

    model_config = SettingsConfigDict(env_prefix="UIBRIDGE_SCREENSHOT__")

    auto_save: bool = False
    folder: str = "uibridge-screenshots"
    prefix: str = "screenshot"
    timestamp: bool = True
    include_metadata: bool = False
    download: bool = True
    persist_locally: bool = False
    server_endpoint: str = ""
    download_dir: str = "data/downloads"
    store_path: str = "data/screenshots.db"

    def save_defaults(self) -> dict[str, Any]:
        """Return the save-config keys used as the capture command's base layer."""
        return {
            "autoSave": self.auto_save,
            "folder": self.folder,
            "prefix": self.prefix,
            "timestamp": self.timestamp,
            "includeMetadata": self.include_metadata,
            "download": self.download,
            "persistLocally": self.persist_locally,
            "serverEndpoint": self.server_endpoint or None,
        }


class CaptureSettings(BaseSettings):
    """Rasterization capability configuration."""

    model_config = SettingsConfigDict(env_prefix="UIBRIDGE_CAPTURE__")

    timeout_sec: float = 30.0
    rasterizer_sources: list[str] = Field(default_factory=lambda: list(DEFAULT_RASTERIZER_SOURCES))
    native_fallback: bool = True
    source_load_timeout_sec: float = 10.0


class BrowserSettings(BaseSettings):
    """Playwright browser settings for the page agent."""

    model_config = SettingsConfigDict(env_prefix="UIBRIDGE_BROWSER__")

    headless: bool = False
    timeout_ms: int = 30_000
    viewport_width: int = 1280
    viewport_height: int = 800


class APISettings(BaseSettings):
    """Controller (API server) configuration."""

    model_config = SettingsConfigDict(env_prefix="UIBRIDGE_API__")

    host: str = "0.0.0.0"
    port: int = 3002
    cors_origins: list[str] = ["*"]
    client_timeout_sec: float = 300.0
    sweep_interval_sec: float = 60.0
    max_activity_entries: int = 100
    max_settled_commands: int = 100
    screenshots_dir: str = "data/screenshots"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root UIBridge settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="UIBRIDGE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False

    bridge: BridgeSettings = Field(default_factory=BridgeSettings)
    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    screenshot: ScreenshotSettings = Field(default_factory=ScreenshotSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    api: APISettings = Field(default_factory=APISettings)

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
        """Normalize relative paths against project_root."""
        root = self.project_root
        if not Path(self.screenshot.download_dir).is_absolute():
            self.screenshot.download_dir = str(root / self.screenshot.download_dir)
        if not Path(self.screenshot.store_path).is_absolute():
            self.screenshot.store_path = str(root / self.screenshot.store_path)
        if not Path(self.api.screenshots_dir).is_absolute():
            self.api.screenshots_dir = str(root / self.api.screenshots_dir)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
