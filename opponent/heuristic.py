"""
Heuristic decision engine for the automated opponent.

Used whenever the proposal service is unavailable or fails. Every AI node
with strength above 1 is considered once, strongest first, and walks a
fixed priority ladder:

1. Threatened (touching a player node): attack the best winnable enemy,
   otherwise hold the garrison in place
2. Safe, next to a threatened friend: reinforce the weakest such friend
3. Attack the best winnable enemy neighbour
4. Capture the best winnable neutral, pressure targets first
5. With excess strength: walk toward the nearest front through friendly
   territory, or occasionally shuffle to a random friendly neighbour

The engine is a pure function of its inputs; the only randomness is the
injected rng used for tie-breaks and stagnation shuffles.
"""

from __future__ import annotations

import random

from map_gen import build_adjacency, find_path
from models import AggressionMode, GameEdge, GameNode, Move, Owner

EXCESS_STRENGTH = 5
ROUTE_DEPTH_CAP = 6

# Chance a source with nothing better to do shuffles to a friendly neighbour
SHUFFLE_PROBABILITY = {
    AggressionMode.CAUTIOUS: 0.25,
    AggressionMode.BALANCED: 0.5,
    AggressionMode.AGGRESSIVE: 0.75,
}


def _can_win(source: GameNode, target: GameNode) -> bool:
    """A full departure (strength - 1) beats the target outright."""
    return source.strength - 1 > target.strength


def _best_enemy(source: GameNode, neighbors: list[GameNode]) -> GameNode | None:
    """Capitals first, then the biggest enemy we can still beat."""
    winnable = [n for n in neighbors if n.owner == Owner.PLAYER and _can_win(source, n)]
    if not winnable:
        return None
    winnable.sort(key=lambda n: (not n.is_capital, -n.strength))
    return winnable[0]


def _best_neutral(source: GameNode, neighbors: list[GameNode], pressure_ids: set[str]) -> GameNode | None:
    """Neutrals touching the player first, then the cheapest."""
    winnable = [n for n in neighbors if n.owner == Owner.NEUTRAL and _can_win(source, n)]
    if not winnable:
        return None
    winnable.sort(key=lambda n: (n.id not in pressure_ids, n.strength))
    return winnable[0]


def _route_to_front(
    source_id: str,
    nodes: list[GameNode],
    edges: list[GameEdge],
    threatened: set[str],
) -> str | None:
    """First hop toward the nearest threatened AI node, through AI nodes only."""
    path = find_path(nodes, edges, source_id, threatened, Owner.AI, max_hops=ROUTE_DEPTH_CAP)
    if path is None or len(path) < 2:
        return None
    return path[1]


def propose_moves(
    nodes: list[GameNode],
    edges: list[GameEdge],
    aggression: AggressionMode = AggressionMode.BALANCED,
    difficulty: float = 1.0,
    rng: random.Random | None = None,
) -> list[Move]:
    """Propose at most one move per eligible AI node.

    Args:
        nodes: Full node list; the opponent plays without fog
        edges: Map adjacency
        aggression: Sets how eagerly idle nodes shuffle around
        difficulty: Accepted for parity with the proposal service, which is
            the only consumer that scales play by it
        rng: Random source for tie-breaks and shuffles

    Returns:
        Moves in the order they should be replayed
    """
    if rng is None:
        rng = random.Random()

    by_id = {node.id: node for node in nodes}
    adjacency = build_adjacency(edges)

    def neighbors_of(node_id: str) -> list[GameNode]:
        return [by_id[n] for n in adjacency.get(node_id, []) if n in by_id]

    threatened = {
        node.id
        for node in nodes
        if node.owner == Owner.AI and any(n.owner == Owner.PLAYER for n in neighbors_of(node.id))
    }
    pressure_ids = {
        n.id for node in nodes if node.owner == Owner.PLAYER for n in neighbors_of(node.id)
    }

    sources = [n for n in nodes if n.owner == Owner.AI and n.strength > 1]
    # Shuffle first so the stable sort breaks strength ties randomly
    rng.shuffle(sources)
    sources.sort(key=lambda n: -n.strength)

    shuffle_chance = SHUFFLE_PROBABILITY.get(aggression, SHUFFLE_PROBABILITY[AggressionMode.BALANCED])
    moves = []

    for source in sources:
        neighbors = neighbors_of(source.id)

        if source.id in threatened:
            target = _best_enemy(source, neighbors)
            if target is not None:
                moves.append(Move(source.id, target.id))
            continue

        weak_front = [n for n in neighbors if n.owner == Owner.AI and n.id in threatened]
        if weak_front:
            weak_front.sort(key=lambda n: n.strength)
            moves.append(Move(source.id, weak_front[0].id))
            continue

        target = _best_enemy(source, neighbors)
        if target is not None:
            moves.append(Move(source.id, target.id))
            continue

        target = _best_neutral(source, neighbors, pressure_ids)
        if target is not None:
            moves.append(Move(source.id, target.id))
            continue

        if source.strength <= EXCESS_STRENGTH:
            continue

        hop = _route_to_front(source.id, nodes, edges, threatened)
        if hop is not None:
            moves.append(Move(source.id, hop))
            continue

        friendlies = [n for n in neighbors if n.owner == Owner.AI]
        if friendlies and rng.random() < shuffle_chance:
            moves.append(Move(source.id, rng.choice(friendlies).id))

    return moves
