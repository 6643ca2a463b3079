"""
Two-phase move resolution for Hex Konquest.

A move departs immediately (the source keeps a single unit as garrison)
and arrives later, where it either reinforces, attacks or captures.
Both phases are pure: they return new node lists and never mutate input.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from models import GameNode, MovingUnit, Owner, OutcomeKind

CAPTURE_BONUS = 2  # "Fury": extra strength for the AI on every capture

SIDE_NAMES = {
    Owner.PLAYER: 'Blue',
    Owner.AI: 'Red',
    Owner.NEUTRAL: 'Grey',
}


class ResolutionError(Exception):
    """Exception raised when a move references nodes or edges that do not exist."""
    pass


@dataclass
class ArrivalResult:
    """Outcome of an arrival: updated nodes, a log line and what happened."""
    nodes: List[GameNode]
    log: Optional[str]
    outcome: Optional[OutcomeKind]
    target_id: Optional[str] = None


def _index_of(nodes: List[GameNode], node_id: str) -> int:
    for index, node in enumerate(nodes):
        if node.id == node_id:
            return index
    return -1


def depart_node(
    nodes: List[GameNode],
    source_id: str,
    target_id: Optional[str] = None,
) -> Tuple[List[GameNode], Optional[MovingUnit]]:
    """
    Phase 1: pull every unit but one out of the source node.

    Does not check whether the target is adjacent or even exists; that is
    the caller's job.

    Args:
        nodes: Current nodes
        source_id: Node to depart from
        target_id: Destination recorded on the moving unit

    Returns:
        (updated nodes, moving unit) or (unchanged nodes, None) when the
        source is missing or has strength 1 or less
    """
    index = _index_of(nodes, source_id)
    if index == -1:
        return nodes, None

    source = nodes[index]
    if source.strength <= 1:
        return nodes, None

    unit = MovingUnit(
        source_id=source.id,
        start=source.position,
        target_id=target_id,
        count=source.strength - 1,
        owner=source.owner,
    )

    new_nodes = list(nodes)
    new_nodes[index] = replace(source, strength=1)
    return new_nodes, unit


def arrive_node(nodes: List[GameNode], target_id: str, unit: MovingUnit) -> ArrivalResult:
    """
    Phase 2: resolve a moving unit at its destination.

    - Same owner: reinforce, target gains the full count.
    - Different owner, count > strength: capture, owner flips and the
      surplus stays (+CAPTURE_BONUS when the AI captures).
    - Different owner, count <= strength: attack, the moving force is
      destroyed and the target loses that many units.

    Returns:
        ArrivalResult; outcome is None only when target_id does not exist
    """
    index = _index_of(nodes, target_id)
    if index == -1:
        return ArrivalResult(nodes=nodes, log=None, outcome=None, target_id=target_id)

    target = nodes[index]
    side = SIDE_NAMES[unit.owner]

    if unit.owner == target.owner:
        updated = replace(target, strength=target.strength + unit.count)
        log = f"{side} reinforced with {unit.count}."
        outcome = OutcomeKind.REINFORCE
    elif unit.count > target.strength:
        strength = unit.count - target.strength
        bonus_msg = ''
        if unit.owner == Owner.AI:
            strength += CAPTURE_BONUS
            bonus_msg = f" (+{CAPTURE_BONUS} Fury)"
        updated = replace(target, owner=unit.owner, strength=strength)
        log = f"{side} captured a node!{bonus_msg}"
        outcome = OutcomeKind.CAPTURE
    else:
        updated = replace(target, strength=target.strength - unit.count)
        log = f"{side} attacked!"
        outcome = OutcomeKind.ATTACK

    new_nodes = list(nodes)
    new_nodes[index] = updated
    return ArrivalResult(nodes=new_nodes, log=log, outcome=outcome, target_id=target_id)
