"""
Fog of war for Hex Konquest.

A side perceives its own nodes plus everything within a fixed number of
hops from them. Computed from scratch on every call so callers can redraw
as often as they like without stale results.
"""

from collections import deque
from typing import List, Set

from map_gen import build_adjacency
from models import GameEdge, GameNode, Owner


def get_visible_node_ids(
    nodes: List[GameNode],
    edges: List[GameEdge],
    fog_enabled: bool = True,
    radius: int = 1,
    observer: Owner = Owner.PLAYER,
) -> Set[str]:
    """
    Node ids currently observable by a side.

    Multi-source breadth-first search seeded with every node the observer
    owns at depth 0, expanding no further than radius hops.

    Args:
        nodes: All map nodes
        edges: All map edges
        fog_enabled: When False every node is visible
        radius: Maximum hop distance from observer territory
        observer: Side doing the looking

    Returns:
        Set of visible node ids
    """
    if not fog_enabled:
        return {node.id for node in nodes}

    seeds = [node.id for node in nodes if node.owner == observer]
    visible: Set[str] = set(seeds)
    queue = deque((node_id, 0) for node_id in seeds)
    adj = build_adjacency(edges)

    while queue:
        node_id, depth = queue.popleft()
        if depth >= radius:
            continue
        for neighbor in adj.get(node_id, []):
            if neighbor not in visible:
                visible.add(neighbor)
                queue.append((neighbor, depth + 1))

    return visible
