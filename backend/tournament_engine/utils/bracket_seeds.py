"""
Incomplete bracket handling.

Seed positions without a team are byes. A bracket can start as long as at
least two positions are seeded; these helpers only report, they never change
how games are generated.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from tournament_engine.models.bracket import BracketSeed

MIN_SEEDED_TEAMS = 2


@dataclass
class IncompleteBracketReport:
    empty_count: int
    empty_positions: List[int]
    can_start: bool
    warning: str


def can_start_bracket(seeds: Sequence[BracketSeed]) -> bool:
    return sum(1 for s in seeds if s.team_name) >= MIN_SEEDED_TEAMS


def get_empty_positions(seeds: Sequence[BracketSeed]) -> List[int]:
    return sorted(s.position for s in seeds if not s.team_name)


def incomplete_warning(seeds: Sequence[BracketSeed], bracket_size: int) -> str:
    empty_count = len(get_empty_positions(seeds)) + max(0, bracket_size - len(seeds))
    seeded_count = bracket_size - empty_count
    if empty_count == 0:
        return ""
    if seeded_count < MIN_SEEDED_TEAMS:
        return f"Bracket needs at least {MIN_SEEDED_TEAMS} teams to start. Currently has {seeded_count}."
    return f"{empty_count} seed position(s) are empty. These will result in byes (automatic advancement)."


def describe_incomplete_bracket(seeds: Sequence[BracketSeed], bracket_size: int) -> IncompleteBracketReport:
    filled = fill_incomplete_seeds(seeds, bracket_size)
    empty = get_empty_positions(filled)
    return IncompleteBracketReport(
        empty_count=len(empty),
        empty_positions=empty,
        can_start=can_start_bracket(filled),
        warning=incomplete_warning(filled, bracket_size),
    )


def fill_incomplete_seeds(seeds: Sequence[BracketSeed], bracket_size: int) -> List[BracketSeed]:
    """One seed per position 1..bracket_size; missing or unnamed positions become byes."""
    by_position = {s.position: s for s in seeds}
    filled: List[BracketSeed] = []
    for position in range(1, bracket_size + 1):
        existing: Optional[BracketSeed] = by_position.get(position)
        if existing is not None and existing.team_name:
            filled.append(existing)
        else:
            filled.append(BracketSeed(position=position))
    return filled


def suggest_seeding(team_names: Sequence[str], bracket_size: int) -> List[BracketSeed]:
    """Sequential placement: the first N positions get teams, the rest are byes."""
    seeds = [
        BracketSeed(position=i + 1, team_name=name)
        for i, name in enumerate(team_names[:bracket_size])
    ]
    return fill_incomplete_seeds(seeds, bracket_size)
