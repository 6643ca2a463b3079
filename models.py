# Models for the conquest simulation: nodes, edges, transfers and game state

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any


class Owner(Enum):
    """Who holds a node. NEUTRAL nodes belong to nobody."""
    NEUTRAL = 'NEUTRAL'
    PLAYER = 'PLAYER'
    AI = 'AI'


class OutcomeKind(Enum):
    """Result of resolving a transfer at its destination."""
    REINFORCE = 'REINFORCE'
    ATTACK = 'ATTACK'
    CAPTURE = 'CAPTURE'


class AggressionMode(Enum):
    CAUTIOUS = 'cautious'
    BALANCED = 'balanced'
    AGGRESSIVE = 'aggressive'


@dataclass
class Point:
    """Pixel position of a hex centre."""
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y}


@dataclass
class GameNode:
    """
    A hex cell on the map.

    Strength never goes negative; a node keeps at least one unit after
    departing and can only reach 0 through an exactly matched attack.
    """
    id: str  # Stable identifier
    q: int  # Axial coordinate q
    r: int  # Axial coordinate r
    position: Point  # Derived pixel position
    owner: Owner = Owner.NEUTRAL
    strength: int = 1
    is_capital: bool = False  # Assigned at generation, never reassigned

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'q': self.q,
            'r': self.r,
            'position': self.position.to_dict(),
            'owner': self.owner.value,
            'strength': self.strength,
            'is_capital': self.is_capital,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameNode':
        position = data['position']
        return cls(
            id=data['id'],
            q=data['q'],
            r=data['r'],
            position=Point(x=position['x'], y=position['y']),
            owner=Owner(data['owner']),
            strength=int(data['strength']),
            is_capital=bool(data.get('is_capital', False)),
        )


@dataclass(frozen=True)
class GameEdge:
    """Undirected adjacency between two node ids."""
    id: str
    source: str
    target: str

    def other(self, node_id: str) -> Optional[str]:
        """The far end of the edge from node_id, or None if not incident."""
        if node_id == self.source:
            return self.target
        if node_id == self.target:
            return self.source
        return None

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'source': self.source, 'target': self.target}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> 'GameEdge':
        return cls(id=data['id'], source=data['source'], target=data['target'])


@dataclass(frozen=True)
class MovingUnit:
    """
    Units in flight between a depart and its arrival.

    Created by a successful depart and consumed by the matching arrive.
    Never persisted.
    """
    source_id: str
    start: Point
    target_id: Optional[str]
    count: int
    owner: Owner

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_id': self.source_id,
            'start': self.start.to_dict(),
            'target_id': self.target_id,
            'count': self.count,
            'owner': self.owner.value,
        }


@dataclass(frozen=True)
class Move:
    """A proposed transfer from one node to an adjacent one."""
    from_id: str
    to_id: str

    def to_dict(self) -> Dict[str, str]:
        return {'fromId': self.from_id, 'toId': self.to_id}


@dataclass
class GameState:
    """Aggregate simulation state for one match."""
    nodes: List[GameNode] = field(default_factory=list)
    edges: List[GameEdge] = field(default_factory=list)
    turn: int = 1  # Starts at 1, +1 per completed turn cycle
    is_player_turn: bool = True
    is_game_over: bool = False
    winner: Optional[Owner] = None
    logs: List[str] = field(default_factory=list)  # Most recent first

    def get_node(self, node_id: str) -> Optional[GameNode]:
        """Get a node by its ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_owned_by(self, owner: Owner) -> List[GameNode]:
        return [node for node in self.nodes if node.owner == owner]

    def neighbors_of(self, node_id: str) -> List[str]:
        """IDs of nodes sharing an edge with node_id."""
        neighbors = []
        for edge in self.edges:
            other = edge.other(node_id)
            if other is not None:
                neighbors.append(other)
        return neighbors

    def total_strength(self, owner: Owner) -> int:
        return sum(node.strength for node in self.nodes if node.owner == owner)

    def copy(self) -> 'GameState':
        """Independent deep copy, safe to keep as a snapshot."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodes': [node.to_dict() for node in self.nodes],
            'edges': [edge.to_dict() for edge in self.edges],
            'turn': self.turn,
            'is_player_turn': self.is_player_turn,
            'is_game_over': self.is_game_over,
            'winner': self.winner.value if self.winner else None,
            'logs': list(self.logs),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameState':
        winner = data.get('winner')
        return cls(
            nodes=[GameNode.from_dict(n) for n in data['nodes']],
            edges=[GameEdge.from_dict(e) for e in data['edges']],
            turn=int(data.get('turn', 1)),
            is_player_turn=bool(data.get('is_player_turn', True)),
            is_game_over=bool(data.get('is_game_over', False)),
            winner=Owner(winner) if winner else None,
            logs=list(data.get('logs', [])),
        )
