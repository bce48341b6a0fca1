"""Error types raised while building the scene."""

from __future__ import annotations


class ConfigError(ValueError):
    """Configuration is missing a required field or has a malformed value."""


class AssetLoadError(RuntimeError):
    """The asset loader rejected a model file."""
