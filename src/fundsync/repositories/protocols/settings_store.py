"""Settings store protocol."""

from typing import Any, Optional, Protocol


class SettingsStore(Protocol):
    """Flat key-value store for user settings (refresh interval, theme)."""

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when absent."""
        ...

    def put(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""
        ...
