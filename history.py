"""
Undo history for the player's action phase.

A snapshot of the whole game state is pushed before every player move;
undo pops one snapshot at a time. The stack is thrown away when the turn
ends so moves from earlier turns can never be taken back.
"""

from typing import List, Optional

from models import GameState


class HistoryManager:
    """Stack of immutable game-state snapshots."""

    def __init__(self):
        self._snapshots: List[GameState] = []

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def can_undo(self) -> bool:
        return bool(self._snapshots)

    def snapshot_before(self, game_state: GameState) -> None:
        """Record a copy of the state as it is before a move resolves."""
        self._snapshots.append(game_state.copy())

    def undo(self) -> Optional[GameState]:
        """Pop the most recent snapshot, or None if there is nothing to undo."""
        if not self._snapshots:
            return None
        return self._snapshots.pop()

    def clear(self) -> None:
        self._snapshots = []
