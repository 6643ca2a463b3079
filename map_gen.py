"""
Map generation module for Hex Konquest.
Grows an irregular, contiguous blob of flat-topped hexes from the origin,
seeds neutral strengths and places one capital per side.
"""

import math
import random
from collections import deque
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

import numpy as np

from models import GameEdge, GameNode, Owner, Point

MAP_WIDTH = 800
MAP_HEIGHT = 600
MAP_MARGIN = 50

# Flat-topped hexagon geometry
HEX_SIZE = 35  # Outer radius
HEX_SPACING_X = 1.5 * HEX_SIZE
HEX_SPACING_Y = math.sqrt(3) * HEX_SIZE

MAX_NODES = 80
BASE_NODES = 20
PLAYER_START_STRENGTH = 20
AI_BASE_STRENGTH = 20
AI_MIN_STRENGTH = 5
NEUTRAL_STRENGTH_RANGE = (1, 10)


class MapGenerationError(Exception):
    """Exception raised when a playable map cannot be produced."""
    pass


def get_hex_neighbors(q: int, r: int) -> List[Tuple[int, int]]:
    """
    Get the 6 neighboring hex coordinates in axial system.

    Args:
        q: Axial coordinate q
        r: Axial coordinate r

    Returns:
        List of (q, r) coordinates for neighboring hexes
    """
    # 6 directions: (1,0), (1,-1), (0,-1), (-1,0), (-1,1), (0,1)
    directions = [(1, 0), (1, -1), (0, -1), (-1, 0), (-1, 1), (0, 1)]
    return [(q + dq, r + dr) for dq, dr in directions]


def hex_to_pixel(q: int, r: int) -> Point:
    """Project an axial coordinate to a pixel position centred on the map."""
    x = HEX_SPACING_X * q
    y = HEX_SPACING_Y * (r + q / 2)
    return Point(x=x + MAP_WIDTH / 2, y=y + MAP_HEIGHT / 2)


def is_within_viewport(point: Point) -> bool:
    """True if a hex centre keeps its margin inside the map viewport."""
    return (MAP_MARGIN < point.x < MAP_WIDTH - MAP_MARGIN
            and MAP_MARGIN < point.y < MAP_HEIGHT - MAP_MARGIN)


def target_node_count(level: int) -> int:
    """Number of hexes to grow for a level, capped at MAX_NODES."""
    return min(MAX_NODES, BASE_NODES + math.floor(0.5 * (level - 1)))


def ai_start_strength(level: int, difficulty: float,
                      base: int = AI_BASE_STRENGTH,
                      minimum: int = AI_MIN_STRENGTH) -> int:
    """
    Starting strength of the AI capital.

    Base grows by one per level and is scaled by the difficulty factor
    (0.5 - 2.0), never dropping below the minimum.
    """
    return max(minimum, math.floor((base + (level - 1)) * difficulty))


def build_adjacency(edges: List[GameEdge]) -> Dict[str, List[str]]:
    """Adjacency list keyed by node id, built from undirected edges."""
    adj: Dict[str, List[str]] = {}
    for edge in edges:
        adj.setdefault(edge.source, [])
        adj.setdefault(edge.target, [])
        if edge.target not in adj[edge.source]:
            adj[edge.source].append(edge.target)
        if edge.source not in adj[edge.target]:
            adj[edge.target].append(edge.source)
    return adj


def grow_hex_blob(count: int, rng: random.Random) -> List[Tuple[int, int]]:
    """
    Grow a contiguous set of axial coordinates from the origin.

    Each step picks a random frontier hex and adds the first free,
    on-screen neighbour in shuffled order. A frontier hex that cannot
    grow is interior and leaves the frontier.

    Args:
        count: Target number of hexes
        rng: Random source

    Returns:
        Placed coordinates in placement order
    """
    origin = (0, 0)
    hexes = [origin]
    occupied: Set[Tuple[int, int]] = {origin}
    frontier = [origin]

    while len(hexes) < count and frontier:
        index = rng.randrange(len(frontier))
        q, r = frontier[index]

        neighbors = get_hex_neighbors(q, r)
        rng.shuffle(neighbors)

        added = False
        for coord in neighbors:
            if coord in occupied:
                continue
            if not is_within_viewport(hex_to_pixel(*coord)):
                continue
            occupied.add(coord)
            hexes.append(coord)
            frontier.append(coord)
            added = True
            break

        if not added:
            frontier.pop(index)

    return hexes


def generate_map(
    level: int = 1,
    difficulty: float = 1.0,
    rng: Optional[random.Random] = None,
    player_start_strength: int = PLAYER_START_STRENGTH,
    ai_base_strength: int = AI_BASE_STRENGTH,
    ai_min_strength: int = AI_MIN_STRENGTH,
) -> Tuple[List[GameNode], List[GameEdge]]:
    """
    Generate a procedural hex map for a level.

    Args:
        level: Level index (1-based), scales node count and AI strength
        difficulty: AI difficulty factor applied to the AI capital
        rng: Random source; seed it for a reproducible map
        player_start_strength: Strength of the player capital
        ai_base_strength: AI capital strength before level/difficulty scaling
        ai_min_strength: Floor for the AI capital strength

    Returns:
        (nodes, edges) with exactly one capital per side
    """
    rng = rng or random.Random()

    hexes = grow_hex_blob(target_node_count(level), rng)
    if len(hexes) < 2:
        raise MapGenerationError(f"Only {len(hexes)} hex placed, need at least 2 for two capitals")

    # Step 1: Hexes to neutral nodes
    coord_to_id: Dict[Tuple[int, int], str] = {}
    nodes: List[GameNode] = []
    low, high = NEUTRAL_STRENGTH_RANGE
    for index, (q, r) in enumerate(hexes):
        node_id = f"n{index}"
        coord_to_id[(q, r)] = node_id
        nodes.append(GameNode(
            id=node_id,
            q=q,
            r=r,
            position=hex_to_pixel(q, r),
            owner=Owner.NEUTRAL,
            strength=rng.randint(low, high),
        ))

    # Step 2: Edges from hex adjacency, one per unordered pair
    edges: List[GameEdge] = []
    seen: Set[Tuple[str, str]] = set()
    for (q, r), u_id in coord_to_id.items():
        for coord in get_hex_neighbors(q, r):
            v_id = coord_to_id.get(coord)
            if v_id is None:
                continue
            key = tuple(sorted((u_id, v_id)))
            if key in seen:
                continue
            seen.add(key)
            edges.append(GameEdge(id=f"e{len(edges)}", source=u_id, target=v_id))

    # Step 3: Capitals at the extremes of the x axis
    order = np.argsort([node.position.x for node in nodes], kind='stable')
    player_node = nodes[int(order[0])]
    ai_node = nodes[int(order[-1])]

    player_node.owner = Owner.PLAYER
    player_node.strength = player_start_strength
    player_node.is_capital = True

    ai_node.owner = Owner.AI
    ai_node.strength = ai_start_strength(level, difficulty, ai_base_strength, ai_min_strength)
    ai_node.is_capital = True

    return nodes, edges


def find_path(
    nodes: List[GameNode],
    edges: List[GameEdge],
    start_id: str,
    end_id: Union[str, Iterable[str]],
    owner: Owner,
    max_hops: Optional[int] = None,
) -> Optional[List[str]]:
    """
    Breadth-first path from start to end through territory held by owner.

    Intermediate nodes must belong to owner; the destination may have
    any owner so the path can end on an attack target. end_id may also be
    a collection of ids, in which case the path leads to the nearest one.

    Args:
        max_hops: Give up on destinations further than this many edges away

    Returns:
        Node ids from start to end inclusive, or None if unreachable
    """
    goals = {end_id} if isinstance(end_id, str) else set(end_id)
    owners = {node.id: node.owner for node in nodes}
    if start_id not in owners:
        return None
    goals &= owners.keys()
    if not goals:
        return None

    adj = build_adjacency(edges)
    came_from: Dict[str, Optional[str]] = {start_id: None}
    queue = deque([(start_id, 0)])

    while queue:
        current, depth = queue.popleft()
        if current in goals:
            path = []
            step: Optional[str] = current
            while step is not None:
                path.append(step)
                step = came_from[step]
            path.reverse()
            return path
        if max_hops is not None and depth >= max_hops:
            continue

        for neighbor in adj.get(current, []):
            if neighbor in came_from:
                continue
            if owners.get(neighbor) == owner or neighbor in goals:
                came_from[neighbor] = current
                queue.append((neighbor, depth + 1))

    return None
