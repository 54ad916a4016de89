"""Tie-break chain: differential, points for, head-to-head, then name."""
from itertools import permutations

from tournament_engine.models.standings import TeamStats
from tournament_engine.services.tiebreaks import (
    TiebreakRule,
    describe_tiebreak,
    head_to_head,
    rank_with_tiebreaks,
    resolve_ties,
)
from tests.helpers import DIVISION, make_game


def _stats(name, wins=2, point_differential=0, points_for=50):
    return TeamStats(
        team_name=name,
        division_id=DIVISION,
        wins=wins,
        point_differential=point_differential,
        points_for=points_for,
    )


def _names(entries):
    return [e.team_name for e in entries]


def test_point_differential_breaks_ties_first():
    group = [_stats("A", point_differential=1, points_for=90), _stats("B", point_differential=5, points_for=10)]
    assert _names(resolve_ties(group, [])) == ["B", "A"]


def test_points_for_breaks_equal_differential():
    group = [_stats("A", points_for=40), _stats("B", points_for=44), _stats("C", points_for=42)]
    assert _names(resolve_ties(group, [])) == ["B", "C", "A"]


def test_head_to_head_decides_a_pair():
    games = [make_game(1, "Zebras", "Ants", 21, 18)]
    group = [_stats("Ants"), _stats("Zebras")]

    assert _names(resolve_ties(group, games)) == ["Zebras", "Ants"]
    assert _names(resolve_ties(list(reversed(group)), games)) == ["Zebras", "Ants"]


def test_head_to_head_is_skipped_for_three_way_ties():
    games = [make_game(1, "C", "A", 21, 18)]
    group = [_stats("C"), _stats("B"), _stats("A")]

    assert _names(resolve_ties(group, games)) == ["A", "B", "C"]


def test_head_to_head_applies_to_the_pair_left_after_earlier_rules():
    games = [make_game(1, "Y", "X", 21, 18)]
    group = [_stats("X"), _stats("Y"), _stats("W", point_differential=10)]

    assert _names(resolve_ties(group, games)) == ["W", "Y", "X"]


def test_split_head_to_head_falls_back_to_name():
    games = [make_game(1, "B", "A", 21, 18), make_game(2, "A", "B", 21, 18)]
    assert head_to_head("A", "B", games) == 0
    assert _names(resolve_ties([_stats("B"), _stats("A")], games)) == ["A", "B"]


def test_resolution_does_not_depend_on_input_order():
    entries = [_stats("delta"), _stats("Alpha"), _stats("charlie"), _stats("Bravo")]
    expected = ["Alpha", "Bravo", "charlie", "delta"]

    for ordering in permutations(entries):
        assert _names(resolve_ties(list(ordering), [])) == expected
    # Re-sorting an already resolved list is a no-op
    assert _names(resolve_ties(resolve_ties(entries, []), [])) == expected


def test_rank_groups_by_wins_and_assigns_ranks():
    entries = [
        _stats("A", wins=1, point_differential=30),
        _stats("B", wins=3),
        _stats("C", wins=1, point_differential=-4),
        _stats("D", wins=3, point_differential=2),
    ]

    ranked = rank_with_tiebreaks(entries, [])

    assert [(e.team_name, e.rank) for e in ranked] == [("D", 1), ("B", 2), ("A", 3), ("C", 4)]


def test_rule_list_is_configurable():
    group = [_stats("A", point_differential=1, points_for=10), _stats("B", point_differential=0, points_for=20)]

    ranked = resolve_ties(group, [], rules=[TiebreakRule.POINTS_FOR, TiebreakRule.NAME])

    assert _names(ranked) == ["B", "A"]


def test_describe_tiebreak_names_the_deciding_rule():
    a, b = _stats("A", point_differential=4), _stats("B", point_differential=1)
    assert "point differential" in describe_tiebreak(a, b, [])

    a, b = _stats("A", wins=3), _stats("B", wins=1)
    assert describe_tiebreak(b, a, []).startswith("A ranks above B on wins")

    games = [make_game(1, "B", "A", 21, 10)]
    assert describe_tiebreak(_stats("A"), _stats("B"), games) == "B ranks above A on head-to-head result"

    assert describe_tiebreak(_stats("b"), _stats("a"), []) == "a ranks above b alphabetically"
