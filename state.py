"""
Game setup and views for Hex Konquest.

Loads tunables from config.json, validates player settings and builds the
opening GameState for a level. Also renders the fog-filtered view the
presentation layer is allowed to see.

Difficulty scales the opponent's starting capital (0.5 easy .. 2.0).
Fog of war hides everything further than fog_radius hops from the player.
"""

from __future__ import annotations
import json
import os
import random
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from map_gen import (
    AI_BASE_STRENGTH,
    AI_MIN_STRENGTH,
    PLAYER_START_STRENGTH,
    generate_map,
)
from models import AggressionMode, GameState, Owner
from orders import log_event
from upkeep import CAPITAL_INCOME, NODE_INCOME

CONFIG_PATH = os.path.join(os.path.dirname(__file__), 'config.json')

DEFAULT_CONFIG: Dict[str, Any] = {
    'player_start_strength': PLAYER_START_STRENGTH,
    'ai_base_strength': AI_BASE_STRENGTH,
    'ai_min_strength': AI_MIN_STRENGTH,
    'node_income': NODE_INCOME,
    'capital_income': CAPITAL_INCOME,
    'ai_thinking_delay': 0.5,  # seconds
    'travel_time': 0.5,
    'settle_delay': 0.2,
    'save_dir': '.saves',
    'save_key': 'konquest_save_data',
    'proposal_model': 'gemini-2.5-flash',
    'proposal_timeout': 20.0,
}

DIFFICULTY_PRESETS = {
    'easy': 0.5,
    'normal': 1.0,
    'hard': 1.5,
}
MIN_DIFFICULTY = 0.5
MAX_DIFFICULTY = 2.0


class SettingsError(Exception):
    """Exception raised when player settings are out of range."""
    pass


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Read config.json merged over the built-in defaults.

    A missing or unparseable file yields the defaults unchanged.
    """
    config = dict(DEFAULT_CONFIG)
    try:
        with open(path or CONFIG_PATH, 'r') as f:
            config.update(json.load(f))
    except (FileNotFoundError, json.JSONDecodeError):
        # Use defaults if config file is missing or invalid
        pass
    return config


@dataclass
class GameSettings:
    """Player-adjustable settings, validated on construction."""
    difficulty: float = 1.0
    aggression: AggressionMode = AggressionMode.BALANCED
    fog_enabled: bool = True
    fog_radius: int = 1

    def __post_init__(self):
        if isinstance(self.aggression, str):
            try:
                self.aggression = AggressionMode(self.aggression)
            except ValueError:
                raise SettingsError(f"Unknown aggression mode: {self.aggression}")
        try:
            self.difficulty = float(self.difficulty)
        except (TypeError, ValueError):
            raise SettingsError(f"Difficulty must be a number, got {self.difficulty!r}")
        if not MIN_DIFFICULTY <= self.difficulty <= MAX_DIFFICULTY:
            raise SettingsError(
                f"Difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}, got {self.difficulty}"
            )
        if isinstance(self.fog_radius, bool) or not isinstance(self.fog_radius, int) or self.fog_radius < 1:
            raise SettingsError(f"Fog radius must be a positive integer, got {self.fog_radius}")

    @classmethod
    def from_preset(cls, name: str, **kwargs) -> GameSettings:
        """Settings using one of the named difficulty presets."""
        if name not in DIFFICULTY_PRESETS:
            raise SettingsError(f"Unknown difficulty preset: {name}")
        return cls(difficulty=DIFFICULTY_PRESETS[name], **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'difficulty': self.difficulty,
            'aggression': self.aggression.value,
            'fog_enabled': self.fog_enabled,
            'fog_radius': self.fog_radius,
        }


def initialize_game(level: int = 1, difficulty: float = 1.0,
                    rng: Optional[random.Random] = None,
                    config: Optional[Dict[str, Any]] = None) -> GameState:
    """
    Build the opening state for a level.

    Args:
        level: Level number, grows the map and the opponent's capital
        difficulty: Multiplier on the opponent's starting capital
        rng: Random source for map generation; seed it for a fixed map
        config: Tunables, defaults to load_config()

    Returns:
        New GameState with the player to move
    """
    if config is None:
        config = load_config()

    nodes, edges = generate_map(
        level=level,
        difficulty=difficulty,
        rng=rng,
        player_start_strength=config['player_start_strength'],
        ai_base_strength=config['ai_base_strength'],
        ai_min_strength=config['ai_min_strength'],
    )

    game_state = GameState(nodes=nodes, edges=edges)
    log_event(game_state, f"Level {level} started. Good luck!")
    return game_state


def get_player_view(game_state: GameState, visible_ids: Set[str]) -> Dict[str, Any]:
    """
    Fog-filtered snapshot for the player.

    Hidden nodes keep their id and position so the board can be drawn,
    but owner and strength are withheld. Opponent totals only count what
    the player can currently see.
    """
    nodes = []
    for node in game_state.nodes:
        entry = node.to_dict()
        entry['visible'] = node.id in visible_ids
        if not entry['visible']:
            entry['owner'] = None
            entry['strength'] = None
        nodes.append(entry)

    visible_ai = [n for n in game_state.nodes if n.owner == Owner.AI and n.id in visible_ids]

    return {
        'turn': game_state.turn,
        'is_player_turn': game_state.is_player_turn,
        'is_game_over': game_state.is_game_over,
        'winner': game_state.winner.value if game_state.winner else None,
        'nodes': nodes,
        'edges': [edge.to_dict() for edge in game_state.edges],
        'logs': list(game_state.logs),
        'player': {
            'nodes': len(game_state.nodes_owned_by(Owner.PLAYER)),
            'strength': game_state.total_strength(Owner.PLAYER),
        },
        'enemy': {
            'nodes': len(visible_ai),
            'strength': sum(n.strength for n in visible_ai),
        },
    }

