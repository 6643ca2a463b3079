"""
Save slot persistence for Hex Konquest.

One named slot holds a SaveRecord as JSON: the full game state plus the
settings in force when it was saved. Failures are logged and reported as
"not performed"; they never touch the live game.
"""

from __future__ import annotations

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from models import AggressionMode, GameState

logger = logging.getLogger(__name__)

SAVE_KEY = "konquest_save_data"


@dataclass
class SaveRecord:
    """Everything needed to resume a match."""

    level: int
    game_state: GameState
    difficulty: float = 1.0
    aggression: AggressionMode = AggressionMode.BALANCED
    fog_enabled: bool = True
    fog_radius: int = 1
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "game_state": self.game_state.to_dict(),
            "difficulty": self.difficulty,
            "aggression": self.aggression.value,
            "fog_enabled": self.fog_enabled,
            "fog_radius": self.fog_radius,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SaveRecord:
        """Rebuild a record; optional settings default like a fresh game."""
        if not isinstance(data, dict) or not isinstance(data.get("game_state"), dict):
            raise ValueError("Save record is not an object with a game_state object")
        if not data["game_state"] or not data.get("level"):
            raise ValueError("Save record is missing game_state or level")
        return cls(
            level=int(data["level"]),
            game_state=GameState.from_dict(data["game_state"]),
            difficulty=float(data.get("difficulty", 1.0)),
            aggression=AggressionMode(data.get("aggression", AggressionMode.BALANCED.value)),
            fog_enabled=bool(data.get("fog_enabled", True)),
            fog_radius=int(data.get("fog_radius", 1)),
            timestamp=float(data.get("timestamp", 0.0)),
        )


class KeyValueStore(ABC):
    """Durable string storage addressed by key."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemoryStore(KeyValueStore):
    """In-process store, used by tests and throwaway sessions."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """One file per key under a directory."""

    def __init__(self, directory: str):
        self._directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self._directory, f"{key}.json")

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        os.makedirs(self._directory, exist_ok=True)
        # Write then rename so a crash never leaves a half-written slot
        tmp_path = self._path(key) + ".tmp"
        with open(tmp_path, "w") as f:
            f.write(value)
        os.replace(tmp_path, self._path(key))

    def delete(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)


class SaveGateway:
    """Reads and writes the single save slot."""

    def __init__(self, store: KeyValueStore, key: str = SAVE_KEY):
        self._store = store
        self._key = key

    def save(self, record: SaveRecord) -> bool:
        """Overwrite the slot. Returns False if serialization or storage failed."""
        try:
            payload = json.dumps(record.to_dict())
            self._store.set(self._key, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Save failed: %s", e)
            return False
        return True

    def load(self) -> SaveRecord | None:
        """Read the slot. Returns None when empty or unreadable."""
        try:
            payload = self._store.get(self._key)
            if payload is None:
                return None
            return SaveRecord.from_dict(json.loads(payload))
        except (OSError, TypeError, ValueError, KeyError, AttributeError) as e:
            logger.error("Load failed: %s", e)
            return None

    def clear(self) -> None:
        try:
            self._store.delete(self._key)
        except OSError as e:
            logger.error("Clearing save failed: %s", e)

    def has_save(self) -> bool:
        try:
            return self._store.get(self._key) is not None
        except OSError as e:
            logger.error("Checking save failed: %s", e)
            return False
