"""
Structure Validator
===================
Read-only consistency checks over a division's pools, brackets and games.

The individual validators return lists of ValidationIssue records and are
reused by the pool and bracket engines before they write. validate_structure()
composes all of them into a ValidationReport; warnings never flip is_valid.

Checks:
  A) Pool names unique, team counts 2-16, no duplicate or empty team names,
     advancement count within 0..team count
  B) A team is assigned to at most one pool per division
  C) Bracket names unique, size in {4, 8, 16, 32}, seeds match size,
     no team seeded twice, unseeded positions (manual seeding, warning)
  D) Hybrid: pool advancement vs. pool-seeded bracket capacity
  E) Games reference existing pools/brackets, never both
  F) Game dependencies reference real games, at most 2, no cycles
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from tournament_engine.models.bracket import VALID_BRACKET_SIZES, Bracket, BracketSeed, SeedingSource
from tournament_engine.models.game import MAX_GAME_DEPENDENCIES, Game
from tournament_engine.models.pool import MAX_POOL_TEAMS, MIN_POOL_TEAMS, Pool
from tournament_engine.storage.base import TournamentStore
from tournament_engine.utils.game_graph import GameGraph

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"

MAX_NAME_LENGTH = 50
POOL_SEEDED_SOURCES = (SeedingSource.pools, SeedingSource.mixed)


# ─── Data structures ─────────────────────────────────────────────────────

@dataclass
class ValidationIssue:
    field: str
    message: str
    severity: str = ERROR
    code: str = ""

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR


@dataclass
class ValidationReport:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)

    @classmethod
    def from_issues(cls, issues: Sequence[ValidationIssue]) -> "ValidationReport":
        errors = [i.message for i in issues if i.is_error]
        warnings = [i.message for i in issues if not i.is_error]
        return cls(is_valid=not errors, errors=errors, warnings=warnings, issues=list(issues))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "issues": [
                {
                    "field": i.field,
                    "message": i.message,
                    "severity": i.severity,
                    "code": i.code,
                }
                for i in self.issues
            ],
        }


def errors_only(issues: Iterable[ValidationIssue]) -> List[str]:
    return [i.message for i in issues if i.is_error]


# ─── Names ───────────────────────────────────────────────────────────────

def _validate_name(kind: str, name: Optional[str], taken: Iterable[str]) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    label = kind.capitalize()
    if not name or not name.strip():
        issues.append(ValidationIssue("name", f"{label} name is required", code="NAME_REQUIRED"))
        return issues
    if len(name) > MAX_NAME_LENGTH:
        issues.append(
            ValidationIssue("name", f"{label} name must be {MAX_NAME_LENGTH} characters or less", code="NAME_TOO_LONG")
        )
    wanted = name.strip().casefold()
    if any(other.strip().casefold() == wanted for other in taken):
        issues.append(
            ValidationIssue("name", f'{label} name "{name}" is already in use', code="DUPLICATE_NAME")
        )
    return issues


def validate_unique_names(kind: str, names: Iterable[str]) -> List[ValidationIssue]:
    """One error per name used by more than one pool (or bracket) in a division."""
    seen: Dict[str, List[str]] = defaultdict(list)
    for name in names:
        seen[(name or "").strip().casefold()].append(name)
    issues = []
    for variants in seen.values():
        if len(variants) > 1:
            issues.append(
                ValidationIssue(
                    "name",
                    f'Duplicate {kind} name "{variants[0]}" used {len(variants)} times',
                    code="DUPLICATE_NAME",
                )
            )
    return issues


# ─── Pools ───────────────────────────────────────────────────────────────

def validate_pool_config(
    name: Optional[str],
    teams: Sequence[str],
    advancement_count: Optional[int] = None,
    existing_pools: Iterable[Pool] = (),
    exclude_pool_id: Optional[int] = None,
) -> List[ValidationIssue]:
    """Checks for one pool's definition; existing_pools supply the names and teams already taken."""
    others = [p for p in existing_pools if p.id != exclude_pool_id]
    taken = [p.name for p in others]
    issues = _validate_name("pool", name, taken)

    if len(teams) < MIN_POOL_TEAMS:
        issues.append(ValidationIssue("teams", f"Pool must have at least {MIN_POOL_TEAMS} teams", code="TOO_FEW_TEAMS"))
    if len(teams) > MAX_POOL_TEAMS:
        issues.append(
            ValidationIssue("teams", f"Pool cannot have more than {MAX_POOL_TEAMS} teams", code="TOO_MANY_TEAMS")
        )

    if any(not t or not t.strip() for t in teams):
        issues.append(ValidationIssue("teams", "Team names cannot be empty", code="EMPTY_TEAM_NAME"))

    seen = set()
    reported = set()
    for team in teams:
        key = (team or "").strip().casefold()
        if not key:
            continue
        if key in seen and key not in reported:
            issues.append(ValidationIssue("teams", f'Duplicate team name: "{team}"', code="DUPLICATE_TEAM"))
            reported.add(key)
        seen.add(key)

    # A team may only be placed in one pool of the division
    owners: Dict[str, str] = {}
    for pool in others:
        for team in pool.teams or []:
            owners.setdefault((team or "").strip().casefold(), pool.name)
    reported = set()
    for team in teams:
        key = (team or "").strip().casefold()
        if key and key in owners and key not in reported:
            issues.append(
                ValidationIssue(
                    "teams",
                    f'Team "{team}" is already assigned to pool {owners[key]}',
                    code="TEAM_IN_MULTIPLE_POOLS",
                )
            )
            reported.add(key)

    issues.extend(validate_advancement_count(advancement_count, len(teams)))
    return issues


def validate_advancement_count(advancement_count: Optional[int], team_count: int) -> List[ValidationIssue]:
    if advancement_count is None:
        return []
    if advancement_count < 0:
        return [ValidationIssue("advancement_count", "Advancement count cannot be negative", code="NEGATIVE_ADVANCEMENT")]
    if advancement_count > team_count:
        return [
            ValidationIssue(
                "advancement_count",
                f"Advancement count ({advancement_count}) cannot exceed number of teams ({team_count})",
                code="ADVANCEMENT_EXCEEDS_TEAMS",
            )
        ]
    if advancement_count == 0:
        return [
            ValidationIssue(
                "advancement_count",
                "Advancement count is 0 - no teams will advance from this pool",
                severity=WARNING,
                code="NO_ADVANCEMENT",
            )
        ]
    return []


def validate_team_conflicts(pools: Iterable[Pool]) -> List[ValidationIssue]:
    """A team may only be placed in one pool of a division."""
    placements: Dict[str, List[Pool]] = defaultdict(list)
    display: Dict[str, str] = {}
    for pool in pools:
        for team in pool.teams or []:
            key = (team or "").strip().casefold()
            if not key:
                continue
            display.setdefault(key, team)
            if all(owner is not pool for owner in placements[key]):
                placements[key].append(pool)

    issues = []
    for key, owners in placements.items():
        if len(owners) > 1:
            names = ", ".join(p.name for p in owners)
            issues.append(
                ValidationIssue(
                    "teams",
                    f'Team "{display[key]}" is assigned to multiple pools: {names}',
                    code="TEAM_IN_MULTIPLE_POOLS",
                )
            )
    return issues


# ─── Brackets ────────────────────────────────────────────────────────────

def validate_bracket_size(size: int) -> List[ValidationIssue]:
    if size not in VALID_BRACKET_SIZES:
        return [ValidationIssue("size", f"Bracket size must be 4, 8, 16, or 32 (got {size})", code="INVALID_SIZE")]
    return []


def validate_bracket_config(
    name: Optional[str],
    size: int,
    seeding_source: Any = SeedingSource.manual,
    seeds: Optional[Sequence[BracketSeed]] = None,
    existing_brackets: Iterable[Bracket] = (),
    exclude_bracket_id: Optional[int] = None,
) -> List[ValidationIssue]:
    taken = [b.name for b in existing_brackets if b.id != exclude_bracket_id]
    issues = _validate_name("bracket", name, taken)
    issues.extend(validate_bracket_size(size))

    try:
        source = SeedingSource(seeding_source)
    except ValueError:
        source = None
        issues.append(
            ValidationIssue("seeding_source", f"Invalid seeding source: {seeding_source}", code="INVALID_SEEDING_SOURCE")
        )

    if seeds is None:
        return issues

    if len(seeds) != size:
        issues.append(
            ValidationIssue("seeds", f"Bracket has {len(seeds)} seeds but size is {size}", code="SEED_COUNT_MISMATCH")
        )

    if sorted(s.position for s in seeds) != list(range(1, len(seeds) + 1)):
        issues.append(
            ValidationIssue(
                "seeds", f"Seed positions must be sequential from 1 to {len(seeds)}", code="SEED_POSITIONS"
            )
        )

    seen = set()
    reported = set()
    for seed in seeds:
        if not seed.team_name:
            continue
        key = seed.team_name.strip().casefold()
        if key in seen and key not in reported:
            issues.append(
                ValidationIssue("seeds", f'Team "{seed.team_name}" is seeded more than once', code="DUPLICATE_SEED")
            )
            reported.add(key)
        seen.add(key)

    unseeded = [s.position for s in seeds if not s.team_name]
    if unseeded and source == SeedingSource.manual:
        issues.append(
            ValidationIssue(
                "seeds",
                f"{len(unseeded)} seed position(s) have no team assigned: {', '.join(map(str, unseeded))}",
                severity=WARNING,
                code="UNSEEDED_POSITIONS",
            )
        )
    return issues


def validate_hybrid_configuration(pools: Sequence[Pool], brackets: Sequence[Bracket]) -> List[ValidationIssue]:
    """Pool advancement must fit the brackets that are seeded from pools."""
    if not pools or not brackets:
        return []

    pool_brackets = [b for b in brackets if b.seeding_source in POOL_SEEDED_SOURCES]
    if not pool_brackets:
        return [
            ValidationIssue(
                "brackets",
                "Division has pools and brackets but no bracket is seeded from pools",
                severity=WARNING,
                code="NO_POOL_SEEDED_BRACKET",
            )
        ]

    issues = []
    for pool in pools:
        if pool.advancement_count is None:
            issues.append(
                ValidationIssue(
                    "advancement_count",
                    f'Pool "{pool.name}" has no advancement count set',
                    severity=WARNING,
                    code="MISSING_ADVANCEMENT",
                )
            )

    advancing = sum(p.advancement_count or 0 for p in pools)
    capacity = sum(b.size for b in pool_brackets)
    if advancing > capacity:
        issues.append(
            ValidationIssue(
                "advancement_count",
                f"Pools advance {advancing} teams but pool-seeded brackets only hold {capacity}",
                code="OVER_CAPACITY",
            )
        )
    elif advancing < capacity:
        issues.append(
            ValidationIssue(
                "advancement_count",
                f"Pools advance {advancing} teams but pool-seeded brackets hold {capacity}; "
                f"{capacity - advancing} position(s) will be byes",
                severity=WARNING,
                code="UNDER_CAPACITY",
            )
        )
    return issues


# ─── Games ───────────────────────────────────────────────────────────────

def _game_label(game: Game) -> str:
    return game.game_label or f"#{game.id}"


def validate_game_references(
    games: Iterable[Game], pools: Sequence[Pool], brackets: Sequence[Bracket]
) -> List[ValidationIssue]:
    pool_ids = {p.id for p in pools}
    bracket_ids = {b.id for b in brackets}
    has_structure = bool(pool_ids or bracket_ids)

    issues = []
    for game in games:
        label = _game_label(game)
        if game.pool_id is not None and game.bracket_id is not None:
            issues.append(
                ValidationIssue("games", f"Game {label} is assigned to both a pool and a bracket", code="DOUBLE_BOUND")
            )
        if game.pool_id is not None and game.pool_id not in pool_ids:
            issues.append(
                ValidationIssue(
                    "games", f"Game {label} references non-existent pool {game.pool_id}", code="MISSING_POOL"
                )
            )
        if game.bracket_id is not None and game.bracket_id not in bracket_ids:
            issues.append(
                ValidationIssue(
                    "games", f"Game {label} references non-existent bracket {game.bracket_id}", code="MISSING_BRACKET"
                )
            )
        if game.pool_id is None and game.bracket_id is None and has_structure:
            issues.append(
                ValidationIssue(
                    "games",
                    f"Game {label} is not assigned to any pool or bracket",
                    severity=WARNING,
                    code="ORPHAN_GAME",
                )
            )
    return issues


def validate_game_dependencies(games: Sequence[Game]) -> List[ValidationIssue]:
    graph = GameGraph(games)
    issues = []
    for game in games:
        label = _game_label(game)
        deps = game.depends_on_games or []
        if len(deps) > MAX_GAME_DEPENDENCIES:
            issues.append(
                ValidationIssue(
                    "depends_on_games",
                    f"Game {label} depends on {len(deps)} games (maximum {MAX_GAME_DEPENDENCIES})",
                    code="TOO_MANY_DEPENDENCIES",
                )
            )
        for dep_id in deps:
            if graph.get(dep_id) is None:
                issues.append(
                    ValidationIssue(
                        "depends_on_games",
                        f"Game {label} depends on non-existent game {dep_id}",
                        code="MISSING_DEPENDENCY",
                    )
                )
        for target in {game.winner_feeds_into_game, game.loser_feeds_into_game, game.feeds_into_game}:
            if target is not None and graph.get(target) is None:
                issues.append(
                    ValidationIssue(
                        "feeds_into_game",
                        f"Game {label} feeds into non-existent game {target}",
                        code="MISSING_FEED_TARGET",
                    )
                )

    cycle = graph.find_cycles()
    if cycle:
        issues.append(
            ValidationIssue(
                "depends_on_games",
                f"Circular dependency detected involving games: {', '.join(map(str, cycle))}",
                code="CYCLE",
            )
        )
    return issues


# ─── Division ────────────────────────────────────────────────────────────

def validate_structure(store: TournamentStore, division_id: str) -> ValidationReport:
    """Run every check for a division. Never writes."""
    pools = store.find_pools(division_id=division_id)
    brackets = store.find_brackets(division_id=division_id)
    games = store.find_games(division_id=division_id)

    issues: List[ValidationIssue] = []
    issues.extend(validate_unique_names("pool", [p.name for p in pools]))
    issues.extend(validate_unique_names("bracket", [b.name for b in brackets]))

    for pool in pools:
        for issue in validate_pool_config(pool.name, pool.teams or [], pool.advancement_count):
            issue.message = f'Pool "{pool.name}": {issue.message}'
            issues.append(issue)
    issues.extend(validate_team_conflicts(pools))

    for bracket in brackets:
        bracket_issues = validate_bracket_config(
            bracket.name, bracket.size, bracket.seeding_source, bracket.seed_list()
        )
        for issue in bracket_issues:
            issue.message = f'Bracket "{bracket.name}": {issue.message}'
            issues.append(issue)

    issues.extend(validate_hybrid_configuration(pools, brackets))
    issues.extend(validate_game_references(games, pools, brackets))
    issues.extend(validate_game_dependencies(games))

    report = ValidationReport.from_issues(issues)
    logger.info(
        "Validated division %s: %d error(s), %d warning(s)",
        division_id,
        len(report.errors),
        len(report.warnings),
    )
    return report
