"""
Tie-break chain for pool standings.

Teams are grouped by wins (descending). Within a wins-group the rules are
applied in order; each rule splits the still-tied runs into smaller runs and
the chain stops as soon as every run holds a single team. Head-to-head only
applies to a run of exactly two teams. The name rule is a total order, so the
result never depends on input order.
"""

from enum import Enum
from itertools import groupby
from typing import Callable, Dict, Iterable, List, Sequence

from tournament_engine.models.game import Game, GameStatus
from tournament_engine.models.standings import TeamStats


class TiebreakRule(str, Enum):
    POINT_DIFFERENTIAL = "point_differential"
    POINTS_FOR = "points_for"
    HEAD_TO_HEAD = "head_to_head"
    NAME = "name"


DEFAULT_TIEBREAK_RULES = (
    TiebreakRule.POINT_DIFFERENTIAL,
    TiebreakRule.POINTS_FOR,
    TiebreakRule.HEAD_TO_HEAD,
    TiebreakRule.NAME,
)

Run = List[TeamStats]


def name_key(team_name: str):
    return (team_name.casefold(), team_name)


def head_to_head(team_a: str, team_b: str, games: Iterable[Game]) -> int:
    """Net completed wins of team_a over team_b (positive favours team_a)."""
    net = 0
    for game in games:
        if game.status != GameStatus.COMPLETED or game.score_a == game.score_b:
            continue
        if {game.team_a, game.team_b} != {team_a, team_b}:
            continue
        winner = game.team_a if game.score_a > game.score_b else game.team_b
        net += 1 if winner == team_a else -1
    return net


def _split_by(run: Run, key: Callable[[TeamStats], object]) -> List[Run]:
    ordered = sorted(run, key=key)
    return [list(g) for _, g in groupby(ordered, key=key)]


def _apply_rule(rule: TiebreakRule, run: Run, games: Sequence[Game]) -> List[Run]:
    if rule == TiebreakRule.POINT_DIFFERENTIAL:
        return _split_by(run, lambda s: -s.point_differential)
    if rule == TiebreakRule.POINTS_FOR:
        return _split_by(run, lambda s: -s.points_for)
    if rule == TiebreakRule.HEAD_TO_HEAD:
        if len(run) != 2:
            return [run]
        first, second = run
        net = head_to_head(first.team_name, second.team_name, games)
        if net > 0:
            return [[first], [second]]
        if net < 0:
            return [[second], [first]]
        return [run]
    if rule == TiebreakRule.NAME:
        return _split_by(run, lambda s: name_key(s.team_name))
    raise ValueError(f"Unknown tiebreak rule: {rule}")


def resolve_ties(
    group: Sequence[TeamStats],
    games: Sequence[Game],
    rules: Sequence[TiebreakRule] = DEFAULT_TIEBREAK_RULES,
) -> List[TeamStats]:
    """Order one equal-wins group."""
    runs: List[Run] = [list(group)]
    for rule in rules:
        if all(len(run) == 1 for run in runs):
            break
        next_runs: List[Run] = []
        for run in runs:
            if len(run) == 1:
                next_runs.append(run)
            else:
                next_runs.extend(_apply_rule(rule, run, games))
        runs = next_runs
    return [team for run in runs for team in run]


def rank_with_tiebreaks(
    stats: Sequence[TeamStats],
    games: Sequence[Game],
    rules: Sequence[TiebreakRule] = DEFAULT_TIEBREAK_RULES,
) -> List[TeamStats]:
    """Wins descending, each wins-group resolved independently, ranks 1..N."""
    by_wins: Dict[int, List[TeamStats]] = {}
    for entry in stats:
        by_wins.setdefault(entry.wins, []).append(entry)

    ranked: List[TeamStats] = []
    for wins in sorted(by_wins, reverse=True):
        ranked.extend(resolve_ties(by_wins[wins], games, rules))

    for rank, entry in enumerate(ranked, start=1):
        entry.rank = rank
    return ranked


def describe_tiebreak(
    a: TeamStats,
    b: TeamStats,
    games: Sequence[Game],
    rules: Sequence[TiebreakRule] = DEFAULT_TIEBREAK_RULES,
) -> str:
    """Human-readable reason a ranks where it does relative to b."""
    if a.wins != b.wins:
        above, below = (a, b) if a.wins > b.wins else (b, a)
        return f"{above.team_name} ranks above {below.team_name} on wins ({above.wins} vs {below.wins})"

    for rule in rules:
        if rule == TiebreakRule.POINT_DIFFERENTIAL and a.point_differential != b.point_differential:
            above, below = (a, b) if a.point_differential > b.point_differential else (b, a)
            return (
                f"{above.team_name} ranks above {below.team_name} on point differential "
                f"({above.point_differential} vs {below.point_differential})"
            )
        if rule == TiebreakRule.POINTS_FOR and a.points_for != b.points_for:
            above, below = (a, b) if a.points_for > b.points_for else (b, a)
            return (
                f"{above.team_name} ranks above {below.team_name} on points for "
                f"({above.points_for} vs {below.points_for})"
            )
        if rule == TiebreakRule.HEAD_TO_HEAD:
            net = head_to_head(a.team_name, b.team_name, games)
            if net:
                above, below = (a, b) if net > 0 else (b, a)
                return f"{above.team_name} ranks above {below.team_name} on head-to-head result"
        if rule == TiebreakRule.NAME:
            above, below = sorted((a, b), key=lambda s: name_key(s.team_name))
            return f"{above.team_name} ranks above {below.team_name} alphabetically"
    return f"{a.team_name} and {b.team_name} are tied"
