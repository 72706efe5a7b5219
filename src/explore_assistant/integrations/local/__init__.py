"""Local, file-based integrations."""

from .settings_store import LocalSettingsStore

__all__ = ["LocalSettingsStore"]
