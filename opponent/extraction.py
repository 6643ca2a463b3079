"""
Request building and response extraction for the proposal service.

The board goes out in a compact form to keep payloads small: each node as
{id, o (owner), s (strength), c (capital 0/1)} plus a separate adjacency
map. Moves come back as {"moves": [{"fromId", "toId"}]}.
"""

from __future__ import annotations

import json
from typing import Any

from map_gen import build_adjacency
from models import AggressionMode, GameEdge, GameNode, Move
from opponent.providers import ProposalError

MOVES_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "moves": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "fromId": {"type": "STRING"},
                    "toId": {"type": "STRING"},
                },
                "required": ["fromId", "toId"],
            },
        },
    },
}

AGGRESSION_PROMPTS = {
    AggressionMode.CAUTIOUS: "STRATEGY: DEFENSIVE. REINFORCE front lines. EXPAND cautiously. DEFEND Capital.",
    AggressionMode.BALANCED: "STRATEGY: EXPANSIONIST. EXPAND income. ATTACK weak neighbors. OPPORTUNISM.",
    AggressionMode.AGGRESSIVE: "STRATEGY: RUSH. ATTACK PLAYER. EXPAND rapidly. MOVE FRONT.",
}

RULES_PROMPT = """Play Konquest as 'AI'. Eliminate 'PLAYER'.
Rules: Moves send ALL strength-1.
Input: JSON with 'nodes' array (id, o=owner, s=strength, c=capital) and 'adj' object (id -> list of neighbor ids).
Output: JSON moves array {fromId, toId}.

Goals:
1. Capture Nodes (My Strength > Their Strength).
2. PRESSURE: When capturing Neutrals, prioritize those adjacent to PLAYER nodes (use 'adj' to check neighbors).
3. Reinforce Front.
4. Protect Capital."""


def difficulty_prompt(difficulty: float) -> str:
    if difficulty <= 0.5:
        return "DIFFICULTY: EASY. Make random moves."
    if difficulty >= 1.5:
        return "DIFFICULTY: HARD. Maximize damage."
    return "DIFFICULTY: NORMAL. Play logically."


def build_system_prompt(aggression: AggressionMode, difficulty: float) -> str:
    """Rules plus one strategy line and one difficulty line."""
    aggression_line = AGGRESSION_PROMPTS.get(aggression, AGGRESSION_PROMPTS[AggressionMode.BALANCED])
    return f"{RULES_PROMPT}\n\n{aggression_line}\n{difficulty_prompt(difficulty)}"


def build_request_payload(nodes: list[GameNode], edges: list[GameEdge]) -> dict[str, Any]:
    """Compact board representation sent to the service."""
    adjacency = {node_id: sorted(set(ids)) for node_id, ids in build_adjacency(edges).items()}
    return {
        "nodes": [
            {
                "id": node.id,
                "o": node.owner.value,
                "s": node.strength,
                "c": 1 if node.is_capital else 0,
            }
            for node in nodes
        ],
        "adj": adjacency,
    }


def parse_moves(text: str) -> list[Move]:
    """Extract the move list from a service response.

    Tolerates a markdown code fence around the JSON.

    Raises:
        ProposalError: if the text is not JSON of the expected shape
    """
    content = text.strip()
    # Handle markdown code blocks
    if content.startswith("```"):
        lines = content.split("\n")
        content = "\n".join(lines[1:-1])

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ProposalError(f"Malformed proposal JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("moves"), list):
        raise ProposalError("Proposal response has no 'moves' list")

    moves = []
    for entry in data["moves"]:
        if not isinstance(entry, dict):
            raise ProposalError(f"Move entry is not an object: {entry!r}")
        from_id = entry.get("fromId")
        to_id = entry.get("toId")
        if not isinstance(from_id, str) or not isinstance(to_id, str):
            raise ProposalError(f"Move entry missing fromId/toId: {entry!r}")
        moves.append(Move(from_id, to_id))
    return moves
