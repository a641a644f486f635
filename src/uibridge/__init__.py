"""UIBridge — drive a live browser page with named, validated automation commands."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("uibridge")
except Exception:
    __version__ = "0.0.0"
