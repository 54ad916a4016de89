"""
Pool Engine: round-robin pools and their fixtures.

A pool's team list is frozen once any of its games is completed. Fixture
generation and regeneration are written as single batches.
"""

import logging
from itertools import combinations
from typing import List, Optional, Sequence

from tournament_engine.cache.standings_cache import StandingsCache
from tournament_engine.errors import ConflictError, NotFoundError, ValidationError
from tournament_engine.models.game import Game, GameStatus
from tournament_engine.models.pool import Pool, PoolUpdate
from tournament_engine.services.standings_service import (
    get_pool_standings,
    invalidate_division_standings_cache,
    invalidate_pool_standings_cache,
)
from tournament_engine.services.structure_validator import (
    errors_only,
    validate_advancement_count,
    validate_pool_config,
)
from tournament_engine.storage.base import TournamentStore

logger = logging.getLogger(__name__)


def _clean_teams(teams: Sequence[str]) -> List[str]:
    return [t.strip() if t else "" for t in teams]


def create_pool(
    store: TournamentStore,
    division_id: str,
    tournament_id: str,
    name: str,
    teams: Sequence[str],
    advancement_count: Optional[int] = None,
) -> Pool:
    teams = _clean_teams(teams)
    issues = validate_pool_config(
        name, teams, advancement_count, existing_pools=store.find_pools(division_id=division_id)
    )
    errors = errors_only(issues)
    if errors:
        raise ValidationError.from_issues(errors)
    for issue in issues:
        logger.warning("Pool %s: %s", name, issue.message)

    pool = store.add(
        Pool(
            division_id=division_id,
            tournament_id=tournament_id,
            name=name.strip(),
            teams=teams,
            advancement_count=advancement_count,
        )
    )
    logger.info("Created pool %s (%s) with %d teams", pool.id, pool.name, len(teams))
    return pool


def get_pool(store: TournamentStore, pool_id: int) -> Pool:
    pool = store.get_pool(pool_id)
    if pool is None:
        raise NotFoundError("Pool", pool_id)
    return pool


def get_pools_by_division(store: TournamentStore, division_id: str) -> List[Pool]:
    return store.find_pools(division_id=division_id)


def get_games_by_pool(store: TournamentStore, pool_id: int) -> List[Game]:
    return sorted(store.find_games(pool_id=pool_id), key=lambda g: (g.pool_game_number or 0, g.id))


def _stage_pool_games(store: TournamentStore, pool: Pool) -> List[Game]:
    """Insert one game per unordered pair (teams[i], teams[j]), i < j. Caller owns the batch."""
    games = []
    for number, (team_a, team_b) in enumerate(combinations(pool.teams, 2), start=1):
        game = Game(
            tournament_id=pool.tournament_id,
            division_id=pool.division_id,
            pool_id=pool.id,
            pool_game_number=number,
            team_a=team_a,
            team_b=team_b,
            score_a=0,
            score_b=0,
            status=GameStatus.SCHEDULED,
            location_id="",
            game_label=f"{pool.name} Game {number}",
        )
        games.append(store.add(game))
    return games


def generate_pool_games(store: TournamentStore, pool_id: int) -> List[Game]:
    """N teams -> N*(N-1)/2 fixtures, numbered 1.. in pair order."""
    pool = get_pool(store, pool_id)
    if store.find_games(pool_id=pool_id):
        raise ConflictError(f"Pool {pool.name} already has games; use update_pool_teams to regenerate")

    with store.batch():
        games = _stage_pool_games(store, pool)
    logger.info("Generated %d games for pool %s", len(games), pool.name)
    return games


def update_pool_teams(
    store: TournamentStore,
    pool_id: int,
    teams: Sequence[str],
    cache: Optional[StandingsCache] = None,
) -> List[Game]:
    """Replace the team list and regenerate every fixture. Refused once a game is completed."""
    pool = get_pool(store, pool_id)
    teams = _clean_teams(teams)

    issues = validate_pool_config(
        pool.name,
        teams,
        pool.advancement_count,
        existing_pools=store.find_pools(division_id=pool.division_id),
        exclude_pool_id=pool.id,
    )
    errors = errors_only(issues)
    if errors:
        raise ValidationError.from_issues(errors)

    existing = store.find_games(pool_id=pool_id)
    if any(g.status == GameStatus.COMPLETED for g in existing):
        raise ConflictError(f"Cannot change teams for pool {pool.name}: games have already been completed")

    with store.batch():
        for game in existing:
            store.delete(game)
        pool = store.set_pool_teams(pool_id, teams)
        games = _stage_pool_games(store, pool)

    invalidate_pool_standings_cache(cache, pool_id)
    invalidate_division_standings_cache(cache, pool.division_id)
    logger.info("Regenerated %d games for pool %s (replaced %d)", len(games), pool.name, len(existing))
    return games


def update_pool(
    store: TournamentStore,
    pool_id: int,
    changes: PoolUpdate,
    cache: Optional[StandingsCache] = None,
) -> Pool:
    pool = get_pool(store, pool_id)
    values = changes.model_dump(exclude_unset=True)

    issues = []
    if "name" in values:
        siblings = store.find_pools(division_id=pool.division_id)
        issues.extend(
            i for i in validate_pool_config(values["name"], pool.teams, None, siblings, exclude_pool_id=pool.id)
            if i.field == "name"
        )
    if "advancement_count" in values:
        issues.extend(validate_advancement_count(values["advancement_count"], len(pool.teams)))
    errors = errors_only(issues)
    if errors:
        raise ValidationError.from_issues(errors)

    pool = store.update_pool(pool_id, changes)
    invalidate_pool_standings_cache(cache, pool_id)
    return pool


def delete_pool(store: TournamentStore, pool_id: int, cache: Optional[StandingsCache] = None) -> None:
    pool = get_pool(store, pool_id)
    division_id = pool.division_id
    games = store.find_games(pool_id=pool_id)
    with store.batch():
        for game in games:
            store.delete(game)
        store.delete(pool)

    invalidate_pool_standings_cache(cache, pool_id)
    invalidate_division_standings_cache(cache, division_id)
    logger.info("Deleted pool %s and %d games", pool_id, len(games))


def get_advancing_teams(
    store: TournamentStore,
    pool_id: int,
    count: Optional[int] = None,
    cache: Optional[StandingsCache] = None,
) -> List[str]:
    """Top-N team names by pool standings; N defaults to the pool's advancement count."""
    pool = get_pool(store, pool_id)
    if count is None:
        count = pool.advancement_count or 0
    if count < 0 or count > len(pool.teams):
        raise ValidationError(
            f"Cannot advance {count} teams from pool {pool.name} with {len(pool.teams)} teams"
        )
    standings = get_pool_standings(store, pool_id, cache=cache)
    return [s.team_name for s in standings[:count]]
