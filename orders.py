"""
Player order validation for Hex Konquest.

A player order names a source node and an adjacent destination. Orders
that fail validation are dropped without touching the game state.
"""

from typing import Optional, Set

from models import GameState, Owner

LOG_CAPACITY = 5


class OrderValidationError(Exception):
    """Exception raised when an order fails validation."""
    pass


class Order:
    def __init__(self, from_id: str, to_id: str, owner: Owner = Owner.PLAYER):
        """Initialize a move order from one node to another."""
        self.from_id = from_id
        self.to_id = to_id
        self.owner = owner

    def __repr__(self) -> str:
        return f"Order({self.from_id} -> {self.to_id}, {self.owner.value})"


def log_event(game_state: GameState, event: str, capacity: int = LOG_CAPACITY) -> None:
    """
    Add an event to the front of the game log, dropping the oldest entries.

    Args:
        game_state: Current game state
        event: Message to record
        capacity: Maximum number of entries kept
    """
    game_state.logs = [event, *game_state.logs][:capacity]


def is_adjacent(game_state: GameState, from_id: str, to_id: str) -> bool:
    """Check if two nodes share an edge."""
    return to_id in game_state.neighbors_of(from_id)


def validate_order(order: Order, game_state: GameState,
                   visible_ids: Optional[Set[str]] = None) -> bool:
    """
    Validate a move order against the current game state.

    Args:
        order: Order to check
        game_state: Current game state
        visible_ids: Nodes the ordering side can see; None skips the fog check

    Returns:
        True if the order is legal

    Raises:
        OrderValidationError: describing the first rule the order breaks
    """
    if game_state.is_game_over:
        raise OrderValidationError("Game is over")

    source = game_state.get_node(order.from_id)
    if source is None:
        raise OrderValidationError(f"Source node {order.from_id} does not exist")

    target = game_state.get_node(order.to_id)
    if target is None:
        raise OrderValidationError(f"Target node {order.to_id} does not exist")

    if order.from_id == order.to_id:
        raise OrderValidationError("Source and target are the same node")

    if source.owner != order.owner:
        raise OrderValidationError(f"Node {order.from_id} is not owned by {order.owner.value}")

    if visible_ids is not None:
        if order.to_id not in visible_ids:
            raise OrderValidationError(f"Target node {order.to_id} is hidden by fog of war")
        if order.from_id not in visible_ids:
            raise OrderValidationError(f"Source node {order.from_id} is hidden by fog of war")

    if not is_adjacent(game_state, order.from_id, order.to_id):
        raise OrderValidationError(f"Node {order.to_id} is not adjacent to {order.from_id}")

    return True

