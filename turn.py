"""
Turn orchestration for Hex Konquest.

The orchestrator owns the single mutable GameState and drives the turn
cycle:

    PLAYER_ACTING -> AWAITING_AI_DECISION -> REPLAYING_AI_MOVES
        -> TURN_SETTLING -> PLAYER_ACTING

with GAME_OVER entered as soon as a victory check fires. Player moves
depart immediately and arrive when the caller reports the transfer has
landed. Opponent moves are replayed one at a time against a working copy
of the nodes, each change published to the canonical state as it happens.

Presentation code listens through subscribe() and receives GameEvents; the
orchestrator never calls into rendering or audio directly.
"""

import copy
import itertools
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from history import HistoryManager
from map_gen import build_adjacency
from models import GameNode, GameState, Move, MovingUnit, OutcomeKind, Owner
from opponent.agent import OpponentAgent
from orders import Order, OrderValidationError, log_event, validate_order
from persistence import JsonFileStore, KeyValueStore, SaveGateway, SaveRecord
from resolution import ArrivalResult, ResolutionError, arrive_node, depart_node
from state import GameSettings, SettingsError, get_player_view, initialize_game, load_config
from upkeep import apply_turn_income, check_victory, declare_winner, perform_upkeep
from visibility import get_visible_node_ids

logger = logging.getLogger(__name__)


class Phase(Enum):
    PLAYER_ACTING = 'PLAYER_ACTING'
    AWAITING_AI_DECISION = 'AWAITING_AI_DECISION'
    REPLAYING_AI_MOVES = 'REPLAYING_AI_MOVES'
    TURN_SETTLING = 'TURN_SETTLING'
    GAME_OVER = 'GAME_OVER'


# Phases during which the opponent holds the state
AI_PHASES = (Phase.AWAITING_AI_DECISION, Phase.REPLAYING_AI_MOVES, Phase.TURN_SETTLING)


class EventKind(Enum):
    """Cues for presentation collaborators."""
    SELECT = 'SELECT'
    DEPART = 'DEPART'
    ATTACK = 'ATTACK'
    CAPTURE = 'CAPTURE'
    REINFORCE = 'REINFORCE'
    TURN_START = 'TURN_START'
    UNDO = 'UNDO'
    WIN = 'WIN'
    LOSE = 'LOSE'


@dataclass
class GameEvent:
    kind: EventKind
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind.value, 'payload': self.payload}


def _find(nodes: List[GameNode], node_id: str) -> Optional[GameNode]:
    for node in nodes:
        if node.id == node_id:
            return node
    return None


class TurnOrchestrator:
    """Owns one match: its state, history, save slot and opponent."""

    def __init__(self, level: int = 1, settings: Optional[GameSettings] = None,
                 agent: Optional[OpponentAgent] = None, store: Optional[KeyValueStore] = None,
                 rng: Optional[random.Random] = None, sleep: Callable[[float], None] = time.sleep,
                 config: Optional[Dict[str, Any]] = None):
        self.config = config if config is not None else load_config()
        self.settings = settings or GameSettings()
        self.rng = rng or random.Random()
        self.agent = agent or OpponentAgent(rng=self.rng)
        self.saves = SaveGateway(store or JsonFileStore(self.config['save_dir']), self.config['save_key'])
        self.history = HistoryManager()
        self.transfers: Dict[str, MovingUnit] = {}  # Dispatch order
        self.level = level
        self.phase = Phase.PLAYER_ACTING
        self.game_state = GameState()
        self._sleep = sleep
        self._listeners: List[Callable[[GameEvent], None]] = []
        self._transfer_ids = itertools.count(1)
        self.new_game(level)

    # --- Events ---

    def subscribe(self, listener: Callable[[GameEvent], None]) -> Callable[[], None]:
        """Register a listener; returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _emit(self, kind: EventKind, **payload) -> None:
        event = GameEvent(kind, payload)
        for listener in list(self._listeners):
            listener(event)

    # --- Level lifecycle ---

    def new_game(self, level: Optional[int] = None) -> GameState:
        """Generate a fresh map and reset everything tied to the old one."""
        if level is not None:
            self.level = level
        self.game_state = initialize_game(self.level, self.settings.difficulty, self.rng, self.config)
        self.history.clear()
        self.transfers.clear()
        self.phase = Phase.PLAYER_ACTING
        logger.info("Level %d started with %d nodes", self.level, len(self.game_state.nodes))
        self._emit(EventKind.TURN_START, side=Owner.PLAYER.value, turn=self.game_state.turn, level=self.level)
        return self.game_state

    def next_level(self) -> GameState:
        return self.new_game(self.level + 1)

    def retry_level(self) -> GameState:
        return self.new_game(self.level)

    # --- Queries ---

    @property
    def can_act(self) -> bool:
        return self.phase == Phase.PLAYER_ACTING and not self.game_state.is_game_over

    @property
    def can_undo(self) -> bool:
        return self.can_act and self.history.can_undo

    def visible_node_ids(self) -> Set[str]:
        """Nodes the player can currently see."""
        return get_visible_node_ids(
            self.game_state.nodes,
            self.game_state.edges,
            self.settings.fog_enabled,
            self.settings.fog_radius,
            Owner.PLAYER,
        )

    def view(self) -> Dict[str, Any]:
        """Fog-filtered state plus the orchestrator's own status."""
        view = get_player_view(self.game_state, self.visible_node_ids())
        view.update({
            'level': self.level,
            'phase': self.phase.value,
            'can_undo': self.can_undo,
            'settings': self.settings.to_dict(),
            'transfers': {tid: unit.to_dict() for tid, unit in self.transfers.items()},
        })
        return view

    # --- Player actions ---

    def dispatch_move(self, from_id: str, to_id: str) -> Optional[str]:
        """
        Depart a player transfer from from_id toward to_id.

        Invalid intents are ignored without touching state or the game log.

        Returns:
            Transfer id to pass to complete_transfer(), or None if nothing moved
        """
        if not self.can_act:
            logger.debug("Ignoring move %s -> %s in phase %s", from_id, to_id, self.phase.value)
            return None

        try:
            validate_order(Order(from_id, to_id), self.game_state, self.visible_node_ids())
        except OrderValidationError as e:
            logger.debug("Ignoring move: %s", e)
            return None

        if self.game_state.get_node(from_id).strength <= 1:
            return None

        self._emit(EventKind.SELECT, node_id=from_id)
        self.history.snapshot_before(self.game_state)
        self.game_state.nodes, unit = depart_node(self.game_state.nodes, from_id, to_id)

        transfer_id = f"t{next(self._transfer_ids)}"
        self.transfers[transfer_id] = unit
        self._emit(EventKind.DEPART, transfer_id=transfer_id, unit=unit.to_dict(),
                   source=self.game_state.get_node(from_id).to_dict())
        return transfer_id

    def complete_transfer(self, transfer_id: str) -> Optional[ArrivalResult]:
        """
        Resolve a player transfer at its destination.

        Transfers land in whatever order the caller reports them, not
        necessarily the order they were dispatched.

        Raises:
            ResolutionError: if the transfer's target no longer exists
        """
        unit = self.transfers.pop(transfer_id, None)
        if unit is None or self.game_state.is_game_over:
            return None

        result = arrive_node(self.game_state.nodes, unit.target_id, unit)
        if result.outcome is None:
            raise ResolutionError(f"Transfer {transfer_id} targets missing node {unit.target_id}")

        self.game_state.nodes = result.nodes
        self._announce_arrival(result, unit)
        self._evaluate_victory(result)
        return result

    def undo(self) -> bool:
        """Roll back the most recent player move. In-flight transfers are dropped."""
        if not self.can_undo:
            return False
        self.game_state = self.history.undo()
        self.transfers.clear()
        self._emit(EventKind.UNDO, turn=self.game_state.turn, remaining=len(self.history))
        return True

    def end_turn(self) -> bool:
        """
        Finish the player's turn and play the opponent's.

        Outstanding transfers land first in dispatch order. Then both sides
        collect income and the opponent decides, replays and settles.

        Returns:
            False if the player could not end the turn right now
        """
        if not self.can_act:
            return False

        for transfer_id in list(self.transfers):
            self.complete_transfer(transfer_id)
            if self.game_state.is_game_over:
                return True

        self.game_state.nodes = apply_turn_income(
            self.game_state.nodes, None, self.config['node_income'], self.config['capital_income'],
        )
        self.game_state.is_player_turn = False
        self.history.clear()
        self._emit(EventKind.TURN_START, side=Owner.AI.value, turn=self.game_state.turn)

        self._play_opponent_turn()
        return True

    # --- Opponent turn ---

    def _play_opponent_turn(self) -> None:
        try:
            self.phase = Phase.AWAITING_AI_DECISION
            self._sleep(self.config['ai_thinking_delay'])
            moves = self.agent.propose(
                copy.deepcopy(self.game_state.nodes),
                list(self.game_state.edges),
                self.settings.aggression,
                self.settings.difficulty,
            )

            self.phase = Phase.REPLAYING_AI_MOVES
            self._replay(moves)
        except Exception:
            logger.exception("Opponent turn failed on turn %d", self.game_state.turn)
            self._skip_opponent_turn()
            return

        if self.game_state.is_game_over:
            return

        self._sleep(self.config['settle_delay'])
        self.phase = Phase.TURN_SETTLING
        result = perform_upkeep(
            self.game_state, Owner.AI, self.config['node_income'], self.config['capital_income'],
        )
        if result['winner'] is not None:
            self._enter_game_over(result['winner'])
            return

        self.phase = Phase.PLAYER_ACTING
        self._emit(EventKind.TURN_START, side=Owner.PLAYER.value, turn=self.game_state.turn)

    def _replay(self, moves: List[Move]) -> None:
        """Apply the opponent's moves in order against a working copy of the nodes."""
        working = copy.deepcopy(self.game_state.nodes)
        adjacency = {node_id: set(ids) for node_id, ids in build_adjacency(self.game_state.edges).items()}

        for move in moves:
            source = _find(working, move.from_id)
            target = _find(working, move.to_id)
            # Adjacency is checked too; the service may name any two node ids
            if (source is None or target is None or source.owner != Owner.AI
                    or source.strength <= 1 or move.to_id not in adjacency.get(move.from_id, ())):
                logger.debug("Skipping opponent move %s -> %s", move.from_id, move.to_id)
                continue

            working, unit = depart_node(working, move.from_id, move.to_id)
            self._publish(working, move.from_id)
            self._emit(EventKind.DEPART, unit=unit.to_dict(),
                       source=self.game_state.get_node(move.from_id).to_dict())

            self._sleep(self.config['travel_time'])

            result = arrive_node(working, move.to_id, unit)
            working = result.nodes
            self._publish(working, move.to_id)
            self._announce_arrival(result, unit)
            if self._evaluate_victory(result) is not None:
                break

    def _publish(self, working: List[GameNode], node_id: str) -> None:
        """Copy one node from the working copy into the canonical state."""
        updated = copy.deepcopy(_find(working, node_id))
        self.game_state.nodes = [updated if node.id == node_id else node for node in self.game_state.nodes]

    def _skip_opponent_turn(self) -> None:
        log_event(self.game_state, "AI malfunctioned (API Error). Skipping AI turn.")
        if self.game_state.is_game_over:
            self.phase = Phase.GAME_OVER
            return
        self.game_state.turn += 1
        self.game_state.is_player_turn = True
        self.phase = Phase.PLAYER_ACTING
        self._emit(EventKind.TURN_START, side=Owner.PLAYER.value, turn=self.game_state.turn)

    # --- Outcomes ---

    def _announce_arrival(self, result: ArrivalResult, unit: MovingUnit) -> None:
        log_event(self.game_state, result.log)
        self._emit(
            EventKind(result.outcome.value),
            owner=unit.owner.value,
            target_id=result.target_id,
            count=unit.count,
            node=self.game_state.get_node(result.target_id).to_dict(),
            visible=result.target_id in self.visible_node_ids(),
        )

    def _evaluate_victory(self, result: ArrivalResult) -> Optional[Owner]:
        winner = check_victory(self.game_state.nodes, result.outcome, result.target_id)
        if winner is None:
            return None
        target = self.game_state.get_node(result.target_id)
        capital_captured = result.outcome == OutcomeKind.CAPTURE and target.is_capital
        declare_winner(self.game_state, winner, capital_captured)
        self._enter_game_over(winner)
        return winner

    def _enter_game_over(self, winner: Owner) -> None:
        self.phase = Phase.GAME_OVER
        self.transfers.clear()
        logger.info("Level %d over on turn %d, winner %s", self.level, self.game_state.turn, winner.value)
        kind = EventKind.WIN if winner == Owner.PLAYER else EventKind.LOSE
        self._emit(kind, winner=winner.value, level=self.level, turn=self.game_state.turn)

    # --- Settings and persistence ---

    def update_settings(self, **changes) -> GameSettings:
        """
        Replace settings with validated values.

        Difficulty takes effect from the next generated map.

        Raises:
            SettingsError: if any value is out of range
        """
        merged = {**self.settings.to_dict(), **changes}
        unknown = set(merged) - set(GameSettings.__dataclass_fields__)
        if unknown:
            raise SettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")
        self.settings = GameSettings(**merged)
        return self.settings

    def save(self) -> bool:
        """Write the current match to the save slot. Refused while the opponent acts."""
        if self.phase in AI_PHASES:
            log_event(self.game_state, "Cannot save during AI turn.")
            return False

        record = SaveRecord(
            level=self.level,
            game_state=self.game_state.copy(),
            difficulty=self.settings.difficulty,
            aggression=self.settings.aggression,
            fog_enabled=self.settings.fog_enabled,
            fog_radius=self.settings.fog_radius,
        )
        saved = self.saves.save(record)
        log_event(self.game_state, "Game saved successfully." if saved else "Failed to save game.")
        return saved

    def load(self) -> bool:
        """Restore the match in the save slot. In-flight transfers are discarded."""
        if self.phase in AI_PHASES:
            log_event(self.game_state, "Cannot load during AI turn.")
            return False

        record = self.saves.load()
        settings = None
        if record is not None:
            try:
                settings = GameSettings(record.difficulty, record.aggression,
                                        record.fog_enabled, record.fog_radius)
            except SettingsError as e:
                logger.error("Saved settings rejected: %s", e)
        if settings is None:
            log_event(self.game_state, "Failed to load save file.")
            return False

        self.level = record.level
        self.settings = settings
        self.game_state = record.game_state
        self.history.clear()
        self.transfers.clear()
        if self.game_state.is_game_over:
            self.phase = Phase.GAME_OVER
        else:
            self.game_state.is_player_turn = True
            self.phase = Phase.PLAYER_ACTING
        log_event(self.game_state, "Game loaded successfully.")
        self._emit(EventKind.TURN_START, side=Owner.PLAYER.value, turn=self.game_state.turn, level=self.level)
        return True

    def clear_save(self) -> None:
        self.saves.clear()

    def has_save(self) -> bool:
        return self.saves.has_save()
