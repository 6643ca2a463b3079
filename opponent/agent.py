"""
Opponent agent: proposal service first, heuristic engine as fallback.

Both paths share one contract, an ordered list of Move, so the turn
orchestrator cannot tell them apart. A service failure is logged once and
answered with the heuristic on exactly the same inputs.
"""

from __future__ import annotations

import json
import logging
import random

from models import AggressionMode, GameEdge, GameNode, Move
from opponent.extraction import (
    MOVES_SCHEMA,
    build_request_payload,
    build_system_prompt,
    parse_moves,
)
from opponent.heuristic import propose_moves
from opponent.providers import ProposalError, ProposalService

logger = logging.getLogger(__name__)

SOURCE_SERVICE = "service"
SOURCE_HEURISTIC = "heuristic"


class OpponentAgent:
    """Decides the automated side's moves for one turn."""

    def __init__(self, provider: ProposalService | None = None, rng: random.Random | None = None):
        self._provider = provider
        self._rng = rng or random.Random()
        self.last_source: str | None = None

    @property
    def name(self) -> str:
        if self._provider is None:
            return "heuristic"
        return f"service_{self._provider.model_id}"

    def propose(
        self,
        nodes: list[GameNode],
        edges: list[GameEdge],
        aggression: AggressionMode = AggressionMode.BALANCED,
        difficulty: float = 1.0,
    ) -> list[Move]:
        """Moves for this turn. Never raises for service failures."""
        if self._provider is not None:
            try:
                moves = self._ask_service(nodes, edges, aggression, difficulty)
                self.last_source = SOURCE_SERVICE
                return moves
            except ProposalError as e:
                logger.warning("Proposal service failed, using heuristic: %s", e)

        self.last_source = SOURCE_HEURISTIC
        return propose_moves(nodes, edges, aggression, difficulty, self._rng)

    def _ask_service(
        self,
        nodes: list[GameNode],
        edges: list[GameEdge],
        aggression: AggressionMode,
        difficulty: float,
    ) -> list[Move]:
        system = build_system_prompt(aggression, difficulty)
        payload = json.dumps(build_request_payload(nodes, edges))
        response = self._provider.propose(system, payload, MOVES_SCHEMA)
        logger.debug("Proposal from %s in %.0f ms", response.model, response.latency_ms)
        return parse_moves(response.content)
