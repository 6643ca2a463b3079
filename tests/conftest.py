"""Shared test fixtures and helpers."""

import random

import pytest

from models import GameEdge, GameNode, GameState, Owner, Point
from persistence import MemoryStore
from state import GameSettings, load_config
from turn import TurnOrchestrator

N = Owner.NEUTRAL
P = Owner.PLAYER
A = Owner.AI


# --- Fixtures ---


@pytest.fixture
def rng():
    """Deterministic RNG seeded at 42."""
    return random.Random(42)


@pytest.fixture
def config():
    """Repository config; waits go through the injected sleep."""
    return load_config()


@pytest.fixture
def sleeps():
    """Records every requested wait instead of sleeping."""
    return []


@pytest.fixture
def orchestrator(rng, config, sleeps):
    """Fresh level-1 match with fog on, in-memory saves and no real sleeping."""
    return TurnOrchestrator(
        level=1,
        settings=GameSettings(),
        store=MemoryStore(),
        rng=rng,
        sleep=sleeps.append,
        config=config,
    )


@pytest.fixture
def api_client(tmp_path, monkeypatch):
    """Flask test client with delays off, saves under tmp_path and the heuristic opponent."""
    from app import app, games

    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)

    app.config["TESTING"] = True
    app.config["SIMULATE_DELAYS"] = False
    app.config["SAVE_DIR"] = str(tmp_path)
    with app.test_client() as client:
        yield client
    games.clear()


# --- Helper functions ---


def make_node(node_id, owner=N, strength=1, is_capital=False, q=0, r=0):
    return GameNode(
        id=node_id,
        q=q,
        r=r,
        position=Point(x=float(q * 50), y=float(r * 50)),
        owner=owner,
        strength=strength,
        is_capital=is_capital,
    )


def make_edges(pairs):
    """Edges from (source, target) id pairs."""
    return [GameEdge(id=f"e{i}", source=s, target=t) for i, (s, t) in enumerate(pairs)]


def make_board(specs, pairs):
    """
    Build nodes and edges from compact specs.

    specs: list of (id, owner, strength) or (id, owner, strength, is_capital)
    pairs: list of (source, target) id pairs
    """
    nodes = []
    for index, spec in enumerate(specs):
        node_id, owner, strength = spec[:3]
        is_capital = spec[3] if len(spec) > 3 else False
        nodes.append(make_node(node_id, owner, strength, is_capital, q=index))
    return nodes, make_edges(pairs)


def make_state(specs, pairs):
    nodes, edges = make_board(specs, pairs)
    return GameState(nodes=nodes, edges=edges)


def line_board():
    """
    Five nodes in a row, capitals at the ends:

        pc(P,10)* - p1(P,8) - m(N,3) - a1(A,6) - ac(A,12)*
    """
    return make_state(
        [
            ("pc", P, 10, True),
            ("p1", P, 8),
            ("m", N, 3),
            ("a1", A, 6),
            ("ac", A, 12, True),
        ],
        [("pc", "p1"), ("p1", "m"), ("m", "a1"), ("a1", "ac")],
    )


def install_board(orchestrator, game_state):
    """Swap a hand-built board into a running orchestrator."""
    orchestrator.game_state = game_state
    orchestrator.history.clear()
    orchestrator.transfers.clear()
    return orchestrator
