"""
Test suite for procedural map generation in Hex Konquest.
Tests hex geometry, blob growth, capital placement and level scaling.
"""

import math
import random
from collections import deque

import pytest

from conftest import A, N, P, make_board
from map_gen import (
    MAP_HEIGHT,
    MAP_MARGIN,
    MAP_WIDTH,
    MAX_NODES,
    MapGenerationError,
    ai_start_strength,
    build_adjacency,
    find_path,
    generate_map,
    get_hex_neighbors,
    grow_hex_blob,
    hex_to_pixel,
    target_node_count,
)
from models import Owner


def _is_connected(nodes, edges):
    adj = build_adjacency(edges)
    start = nodes[0].id
    seen = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for neighbor in adj.get(current, []):
            if neighbor not in seen:
                seen.add(neighbor)
                queue.append(neighbor)
    return seen == {n.id for n in nodes}


class TestHexUtilities:
    """Test basic hex utility functions."""

    def test_get_hex_neighbors(self):
        neighbors = get_hex_neighbors(5, 5)
        expected = [(6, 5), (6, 4), (5, 4), (4, 5), (4, 6), (5, 6)]
        assert set(neighbors) == set(expected)

    def test_origin_is_map_centre(self):
        point = hex_to_pixel(0, 0)
        assert point.x == MAP_WIDTH / 2
        assert point.y == MAP_HEIGHT / 2

    def test_flat_topped_projection(self):
        point = hex_to_pixel(2, -1)
        assert point.x == pytest.approx(1.5 * 35 * 2 + 400)
        assert point.y == pytest.approx(math.sqrt(3) * 35 * (-1 + 1) + 300)

    def test_build_adjacency_is_symmetric_and_deduplicated(self):
        _, edges = make_board([("a", N, 1), ("b", N, 1)], [("a", "b"), ("b", "a")])
        adj = build_adjacency(edges)
        assert adj == {"a": ["b"], "b": ["a"]}


class TestScaling:
    def test_target_node_count(self):
        assert target_node_count(1) == 20
        assert target_node_count(2) == 20
        assert target_node_count(3) == 21
        assert target_node_count(11) == 25
        assert target_node_count(1000) == MAX_NODES

    def test_ai_start_strength(self):
        assert ai_start_strength(1, 1.0) == 20
        assert ai_start_strength(5, 1.0) == 24
        assert ai_start_strength(1, 1.5) == 30
        assert ai_start_strength(2, 0.5) == 10
        # Never below the floor
        assert ai_start_strength(1, 0.1) == 5


class TestBlobGrowth:
    def test_blob_is_contiguous_and_unique(self, rng):
        hexes = grow_hex_blob(20, rng)
        assert len(hexes) == 20
        assert len(set(hexes)) == 20
        assert hexes[0] == (0, 0)
        placed = {hexes[0]}
        for coord in hexes[1:]:
            assert any(n in placed for n in get_hex_neighbors(*coord))
            placed.add(coord)

    def test_blob_stays_inside_margin(self, rng):
        for q, r in grow_hex_blob(MAX_NODES, rng):
            point = hex_to_pixel(q, r)
            assert MAP_MARGIN < point.x < MAP_WIDTH - MAP_MARGIN
            assert MAP_MARGIN < point.y < MAP_HEIGHT - MAP_MARGIN


class TestGenerateMap:
    def test_node_count_and_ids(self, rng):
        nodes, _ = generate_map(level=1, rng=rng)
        assert len(nodes) == 20
        assert len({n.id for n in nodes}) == 20

    def test_exactly_one_capital_per_side(self, rng):
        nodes, _ = generate_map(level=3, difficulty=1.0, rng=rng)
        capitals = [n for n in nodes if n.is_capital]
        assert len(capitals) == 2
        assert {c.owner for c in capitals} == {Owner.PLAYER, Owner.AI}
        assert len([n for n in nodes if n.owner == P]) == 1
        assert len([n for n in nodes if n.owner == A]) == 1

    def test_capitals_at_x_extremes(self, rng):
        nodes, _ = generate_map(rng=rng)
        player = next(n for n in nodes if n.owner == P)
        ai = next(n for n in nodes if n.owner == A)
        xs = [n.position.x for n in nodes]
        assert player.position.x == min(xs)
        assert ai.position.x == max(xs)

    def test_capital_strengths(self, rng):
        nodes, _ = generate_map(level=4, difficulty=1.5, rng=rng)
        player = next(n for n in nodes if n.owner == P)
        ai = next(n for n in nodes if n.owner == A)
        assert player.strength == 20
        assert ai.strength == math.floor((20 + 3) * 1.5)

    def test_neutral_strength_range(self, rng):
        nodes, _ = generate_map(rng=rng)
        for node in nodes:
            if node.owner == N:
                assert 1 <= node.strength <= 10

    def test_edges_valid(self, rng):
        nodes, edges = generate_map(level=20, rng=rng)
        ids = {n.id for n in nodes}
        keys = set()
        for edge in edges:
            assert edge.source != edge.target
            assert edge.source in ids and edge.target in ids
            key = frozenset((edge.source, edge.target))
            assert key not in keys
            keys.add(key)
        assert _is_connected(nodes, edges)

    def test_edges_match_hex_adjacency(self, rng):
        nodes, edges = generate_map(rng=rng)
        by_coord = {(n.q, n.r): n.id for n in nodes}
        expected = set()
        for (q, r), node_id in by_coord.items():
            for coord in get_hex_neighbors(q, r):
                if coord in by_coord:
                    expected.add(frozenset((node_id, by_coord[coord])))
        assert {frozenset((e.source, e.target)) for e in edges} == expected

    def test_seeded_generation_is_reproducible(self):
        first = generate_map(level=2, rng=random.Random(7))
        second = generate_map(level=2, rng=random.Random(7))
        assert first == second

    def test_too_few_hexes_is_an_error(self, rng, monkeypatch):
        monkeypatch.setattr("map_gen.grow_hex_blob", lambda count, rng: [(0, 0)])
        with pytest.raises(MapGenerationError):
            generate_map(rng=rng)


class TestFindPath:
    def setup_method(self):
        self.nodes, self.edges = make_board(
            [("a", P, 5), ("b", P, 2), ("c", N, 3), ("d", A, 4), ("e", P, 1)],
            [("a", "b"), ("b", "c"), ("c", "d"), ("a", "e"), ("e", "c")],
        )

    def test_path_through_own_territory(self):
        path = find_path(self.nodes, self.edges, "a", "c", P)
        assert path[0] == "a" and path[-1] == "c"
        assert len(path) == 3

    def test_neutral_blocks_the_route(self):
        assert find_path(self.nodes, self.edges, "a", "d", P) is None

    def test_unknown_ids(self):
        assert find_path(self.nodes, self.edges, "a", "zz", P) is None

    def test_start_equals_end(self):
        assert find_path(self.nodes, self.edges, "a", "a", P) == ["a"]

    def test_nearest_of_several_targets(self):
        path = find_path(self.nodes, self.edges, "a", {"c", "b"}, P)
        assert path == ["a", "b"]

    def test_max_hops(self):
        assert find_path(self.nodes, self.edges, "a", "c", P, max_hops=1) is None
        assert len(find_path(self.nodes, self.edges, "a", "c", P, max_hops=2)) == 3

    def test_no_known_targets(self):
        assert find_path(self.nodes, self.edges, "a", set(), P) is None
