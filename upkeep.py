"""
Upkeep for Hex Konquest.
Handles turn income, victory condition checking and turn finalization.

- Income: +1 per owned node, +5 for capitals
- Victory: capital capture wins outright; otherwise a side left with no
  nodes loses
- Finalization: advance the turn and hand control back to the player
"""

from dataclasses import replace
from typing import Dict, List, Optional

from models import GameNode, GameState, Owner, OutcomeKind
from orders import log_event

NODE_INCOME = 1
CAPITAL_INCOME = 5


def apply_turn_income(
    nodes: List[GameNode],
    owner: Optional[Owner] = None,
    node_income: int = NODE_INCOME,
    capital_income: int = CAPITAL_INCOME,
) -> List[GameNode]:
    """
    Grow every claimed node.

    Args:
        nodes: Current nodes
        owner: Only grow this side's nodes; None grows both sides
        node_income: Strength added to an ordinary node
        capital_income: Strength added to a capital

    Returns:
        New node list; neutral nodes never grow
    """
    result = []
    for node in nodes:
        if node.owner == Owner.NEUTRAL or (owner is not None and node.owner != owner):
            result.append(node)
            continue
        income = capital_income if node.is_capital else node_income
        result.append(replace(node, strength=node.strength + income))
    return result


def count_nodes(nodes: List[GameNode]) -> Dict[Owner, int]:
    """Number of nodes held by each side."""
    counts = {Owner.PLAYER: 0, Owner.AI: 0, Owner.NEUTRAL: 0}
    for node in nodes:
        counts[node.owner] += 1
    return counts


def check_victory(
    nodes: List[GameNode],
    outcome: Optional[OutcomeKind] = None,
    target_id: Optional[str] = None,
) -> Optional[Owner]:
    """
    Check victory conditions after a resolution step.

    Capital capture short-circuits everything else: the side now holding
    the captured capital wins. Otherwise a side with zero nodes loses.

    Args:
        nodes: Nodes after the step
        outcome: Outcome of the arrival just resolved, if any
        target_id: Node the arrival resolved at

    Returns:
        Winning side, or None if the match continues
    """
    if outcome == OutcomeKind.CAPTURE and target_id is not None:
        for node in nodes:
            if node.id == target_id and node.is_capital:
                return node.owner

    counts = count_nodes(nodes)
    if counts[Owner.PLAYER] == 0:
        return Owner.AI
    if counts[Owner.AI] == 0:
        return Owner.PLAYER
    return None


def declare_winner(game_state: GameState, winner: Owner, capital_captured: bool = False) -> None:
    """Mark the match as over and log the result from the player's point of view."""
    game_state.is_game_over = True
    game_state.winner = winner

    if capital_captured:
        message = "Enemy Capital Captured! VICTORY!" if winner == Owner.PLAYER else "Capital Lost! DEFEAT."
    else:
        message = "Enemy eliminated! VICTORY!" if winner == Owner.PLAYER else "All territory lost. DEFEAT."
    log_event(game_state, message)


def perform_upkeep(
    game_state: GameState,
    owner: Optional[Owner] = Owner.AI,
    node_income: int = NODE_INCOME,
    capital_income: int = CAPITAL_INCOME,
) -> Dict:
    """
    Finalize the opponent's turn.

    Applies income to owner's nodes, checks for annihilation, advances the
    turn counter and gives control back to the player.

    Args:
        game_state: Current game state, modified in place
        owner: Side receiving end-of-turn income
        node_income: Strength per ordinary node
        capital_income: Strength per capital

    Returns:
        Dictionary with 'winner' (Owner or None) and 'income' (side -> total)
    """
    before = {side: game_state.total_strength(side) for side in (Owner.PLAYER, Owner.AI)}
    game_state.nodes = apply_turn_income(game_state.nodes, owner, node_income, capital_income)
    income = {side.value: game_state.total_strength(side) - before[side] for side in before}

    game_state.turn += 1
    game_state.is_player_turn = True
    log_event(game_state, "AI completed turn.")

    winner = None
    if not game_state.is_game_over:
        winner = check_victory(game_state.nodes)
        if winner is not None:
            declare_winner(game_state, winner)

    return {'winner': winner, 'income': income}
