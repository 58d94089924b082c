"""
Key-value preference storage.

Holds the plan ID cached after a successful BlinkUp so later invocations
can reuse it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES_DIR = Path.home() / ".config" / "blinkup-bridge"
DEFAULT_PREFERENCES_NAME = "DefaultPreferences"


class PreferenceStore(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the stored value for key, or default if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key if present."""
        pass


class MemoryPreferenceStore(PreferenceStore):
    """In-process store, used in tests and mock mode."""

    def __init__(self, values: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(values or {})

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class YamlPreferenceStore(PreferenceStore):
    """
    Preferences persisted as a flat YAML mapping.

    The file is re-read on every get so values written by another process
    are picked up. Writes go through a temp file and an atomic rename.
    """

    def __init__(
        self,
        directory: Path = DEFAULT_PREFERENCES_DIR,
        name: str = DEFAULT_PREFERENCES_NAME,
    ):
        self._path = Path(directory) / f"{name}.yaml"

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self._load().get(key)
        if value is None:
            return default
        return str(value)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._write(data)
        logger.debug(f"Saved preference {key}")

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._write(data)

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        data = yaml.safe_load(self._path.read_text()) or {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences file: {self._path}")
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(".yaml.tmp")
        temp_path.write_text(yaml.safe_dump(data, default_flow_style=False, sort_keys=True))
        temp_path.chmod(0o600)
        temp_path.rename(self._path)


def create_store(backend: str, directory: str | Path, name: str) -> PreferenceStore:
    """Create the preference store named by configuration."""
    if backend == "memory":
        return MemoryPreferenceStore()
    return YamlPreferenceStore(Path(directory).expanduser(), name)
