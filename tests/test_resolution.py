"""
Tests for the two-phase move resolver.
Covers depart garrison rules and the reinforce / capture / attack outcomes.
"""

import pytest

from conftest import A, N, P, make_node
from models import MovingUnit, OutcomeKind, Owner, Point
from resolution import CAPTURE_BONUS, arrive_node, depart_node


def _unit(count, owner, target_id="t"):
    return MovingUnit(source_id="s", start=Point(0.0, 0.0), target_id=target_id, count=count, owner=owner)


class TestDepart:
    def test_leaves_one_behind(self):
        nodes = [make_node("s", P, 15)]
        new_nodes, unit = depart_node(nodes, "s", "t")
        assert unit.count == 14
        assert unit.owner == P
        assert unit.target_id == "t"
        assert new_nodes[0].strength == 1

    @pytest.mark.parametrize("strength", [0, 1])
    def test_too_weak_to_depart(self, strength):
        nodes = [make_node("s", P, strength)]
        new_nodes, unit = depart_node(nodes, "s", "t")
        assert unit is None
        assert new_nodes[0].strength == strength

    def test_missing_source(self):
        nodes = [make_node("s", P, 5)]
        new_nodes, unit = depart_node(nodes, "nope")
        assert unit is None
        assert new_nodes is nodes

    def test_input_not_mutated(self):
        nodes = [make_node("s", P, 9)]
        depart_node(nodes, "s", "t")
        assert nodes[0].strength == 9


class TestArrive:
    def test_reinforce(self):
        nodes = [make_node("t", P, 4)]
        result = arrive_node(nodes, "t", _unit(6, P))
        assert result.outcome == OutcomeKind.REINFORCE
        assert result.nodes[0].strength == 10
        assert result.nodes[0].owner == P
        assert result.log == "Blue reinforced with 6."

    def test_player_capture_has_no_bonus(self):
        nodes = [make_node("t", A, 10)]
        result = arrive_node(nodes, "t", _unit(14, P))
        assert result.outcome == OutcomeKind.CAPTURE
        assert result.nodes[0].owner == P
        assert result.nodes[0].strength == 4
        assert result.log == "Blue captured a node!"

    def test_ai_capture_gets_fury_bonus(self):
        nodes = [make_node("t", P, 10)]
        result = arrive_node(nodes, "t", _unit(14, A))
        assert result.nodes[0].owner == A
        assert result.nodes[0].strength == 4 + CAPTURE_BONUS
        assert result.log == "Red captured a node! (+2 Fury)"

    def test_neutral_capture(self):
        result = arrive_node([make_node("t", N, 3)], "t", _unit(4, P))
        assert result.outcome == OutcomeKind.CAPTURE
        assert result.nodes[0].strength == 1

    def test_attack_fails(self):
        nodes = [make_node("t", A, 10)]
        result = arrive_node(nodes, "t", _unit(7, P))
        assert result.outcome == OutcomeKind.ATTACK
        assert result.nodes[0].owner == A
        assert result.nodes[0].strength == 3
        assert result.log == "Blue attacked!"

    def test_exact_match_leaves_zero_and_keeps_owner(self):
        result = arrive_node([make_node("t", N, 5)], "t", _unit(5, A))
        assert result.outcome == OutcomeKind.ATTACK
        assert result.nodes[0].strength == 0
        assert result.nodes[0].owner == N
        assert result.log == "Red attacked!"

    def test_missing_target(self):
        nodes = [make_node("t", N, 5)]
        result = arrive_node(nodes, "ghost", _unit(5, A))
        assert result.outcome is None
        assert result.nodes is nodes

    def test_input_not_mutated(self):
        nodes = [make_node("t", A, 3)]
        arrive_node(nodes, "t", _unit(9, P))
        assert nodes[0].owner == A
        assert nodes[0].strength == 3

    @pytest.mark.parametrize("count", range(1, 13))
    @pytest.mark.parametrize("owner", [P, A])
    def test_strength_never_negative(self, count, owner):
        result = arrive_node([make_node("t", N, 6)], "t", _unit(count, owner))
        assert result.nodes[0].strength >= 0
        if count > 6:
            expected = count - 6 + (CAPTURE_BONUS if owner == A else 0)
            assert result.nodes[0].strength == expected
            assert result.nodes[0].owner == owner
        else:
            assert result.nodes[0].strength == 6 - count
            assert result.nodes[0].owner == N


class TestScenarios:
    """Full depart-then-arrive sequences."""

    @pytest.mark.parametrize("mover,expected", [(P, 4), (A, 6)])
    def test_fifteen_beats_ten(self, mover, expected):
        defender = Owner.AI if mover == P else Owner.PLAYER
        nodes = [make_node("s", mover, 15), make_node("t", defender, 10)]
        nodes, unit = depart_node(nodes, "s", "t")
        assert unit.count == 14
        result = arrive_node(nodes, "t", unit)
        assert result.outcome == OutcomeKind.CAPTURE
        assert result.nodes[1].owner == mover
        assert result.nodes[1].strength == expected

    def test_eight_into_ten_fails(self):
        nodes = [make_node("s", P, 8), make_node("t", A, 10)]
        nodes, unit = depart_node(nodes, "s", "t")
        assert unit.count == 7
        result = arrive_node(nodes, "t", unit)
        assert result.outcome == OutcomeKind.ATTACK
        assert result.nodes[1].strength == 3
        assert result.nodes[1].owner == A
        assert result.nodes[0].strength == 1
