"""
Standings Engine: folds COMPLETED games into per-team statistics.

All three read paths share compute_team_stats() and read through the
standings cache when one is supplied. The cache is never invalidated here
automatically; writers call the invalidate_* helpers.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from tournament_engine.cache.standings_cache import (
    StandingsCache,
    division_standings_key,
    pool_standings_key,
    team_stats_key,
)
from tournament_engine.config import get_settings
from tournament_engine.errors import NotFoundError, ValidationError
from tournament_engine.models.game import Game, GameStatus
from tournament_engine.models.standings import TeamStats
from tournament_engine.services.tiebreaks import DEFAULT_TIEBREAK_RULES, TiebreakRule, rank_with_tiebreaks
from tournament_engine.storage.base import TournamentStore

logger = logging.getLogger(__name__)


def compute_team_stats(
    teams: Iterable[str],
    games: Iterable[Game],
    division_id: str,
    pool_id: Optional[int] = None,
) -> List[TeamStats]:
    """
    Zero record per team, then one pass over completed games.

    A completed game counts toward games_played and points for both sides.
    Only a strict score inequality produces a win and a loss, so a tied game
    is played but neither won nor lost.
    """
    stats: Dict[str, TeamStats] = {}
    for team in teams:
        if team and team not in stats:
            stats[team] = TeamStats(team_name=team, division_id=division_id, pool_id=pool_id)

    for game in games:
        if game.status != GameStatus.COMPLETED:
            continue
        side_a = stats.get(game.team_a)
        side_b = stats.get(game.team_b)
        if side_a is None or side_b is None:
            continue

        side_a.games_played += 1
        side_b.games_played += 1
        side_a.points_for += game.score_a
        side_a.points_against += game.score_b
        side_b.points_for += game.score_b
        side_b.points_against += game.score_a

        if game.score_a > game.score_b:
            side_a.wins += 1
            side_b.losses += 1
        elif game.score_b > game.score_a:
            side_b.wins += 1
            side_a.losses += 1

    for entry in stats.values():
        entry.point_differential = entry.points_for - entry.points_against
    return list(stats.values())


def rank_simple(stats: Sequence[TeamStats]) -> List[TeamStats]:
    """Wins then differential, both descending. Stable: equal records keep their order."""
    ranked = sorted(stats, key=lambda s: (-s.wins, -s.point_differential))
    for rank, entry in enumerate(ranked, start=1):
        entry.rank = rank
    return ranked


def _teams_in_order(games: Iterable[Game]) -> List[str]:
    seen: Dict[str, None] = {}
    for game in games:
        for team in (game.team_a, game.team_b):
            if team:
                seen.setdefault(team, None)
    return list(seen)


def _cached(cache: Optional[StandingsCache], key: str, use_cache: bool):
    if cache is None or not use_cache:
        return None
    return cache.get(key)


def _store_in_cache(cache: Optional[StandingsCache], key: str, value) -> None:
    if cache is None:
        return
    cache.set(key, value, get_settings().standings_cache_ttl_seconds)


def calculate_team_stats(
    store: TournamentStore,
    team_name: str,
    division_id: str,
    cache: Optional[StandingsCache] = None,
    use_cache: bool = True,
) -> TeamStats:
    if not team_name:
        raise ValidationError("Team name is required")
    key = team_stats_key(team_name, division_id)
    cached = _cached(cache, key, use_cache)
    if cached is not None:
        return TeamStats.model_validate(cached)

    games = get_team_games(store, team_name, division_id)
    # Opponents are added so the fold sees both sides of every game
    teams = [team_name] + _teams_in_order(games)
    stats = next(s for s in compute_team_stats(teams, games, division_id) if s.team_name == team_name)
    _store_in_cache(cache, key, stats.model_dump())
    return stats


def get_division_standings(
    store: TournamentStore,
    division_id: str,
    cache: Optional[StandingsCache] = None,
    use_cache: bool = True,
) -> List[TeamStats]:
    key = division_standings_key(division_id)
    cached = _cached(cache, key, use_cache)
    if cached is not None:
        return [TeamStats.model_validate(s) for s in cached]

    games = store.find_games(division_id=division_id)
    standings = rank_simple(compute_team_stats(_teams_in_order(games), games, division_id))
    _store_in_cache(cache, key, [s.model_dump() for s in standings])
    logger.debug("Computed division %s standings for %d teams", division_id, len(standings))
    return standings


def get_pool_standings(
    store: TournamentStore,
    pool_id: int,
    cache: Optional[StandingsCache] = None,
    use_cache: bool = True,
    rules: Sequence[TiebreakRule] = DEFAULT_TIEBREAK_RULES,
) -> List[TeamStats]:
    key = pool_standings_key(pool_id)
    cached = _cached(cache, key, use_cache)
    if cached is not None:
        return [TeamStats.model_validate(s) for s in cached]

    pool = store.get_pool(pool_id)
    if pool is None:
        raise NotFoundError("Pool", pool_id)

    games = store.find_games(pool_id=pool_id)
    stats = compute_team_stats(pool.teams or [], games, pool.division_id, pool_id=pool_id)
    standings = rank_with_tiebreaks(stats, games, rules)
    _store_in_cache(cache, key, [s.model_dump() for s in standings])
    return standings


def get_team_games(store: TournamentStore, team_name: str, division_id: str) -> List[Game]:
    games = store.find_games(division_id=division_id)
    return [g for g in games if team_name in (g.team_a, g.team_b)]


# ─── Cache invalidation ──────────────────────────────────────────────────
# Invalidation is a side effect of a primary write: failures are logged and
# never propagated.

def _invalidate(cache: Optional[StandingsCache], key: str) -> None:
    if cache is None:
        return
    try:
        cache.invalidate(key)
    except Exception:
        logger.warning("Failed to invalidate standings cache entry %s", key, exc_info=True)


def invalidate_team_stats_cache(cache: Optional[StandingsCache], team_name: str, division_id: str) -> None:
    _invalidate(cache, team_stats_key(team_name, division_id))


def invalidate_division_standings_cache(cache: Optional[StandingsCache], division_id: str) -> None:
    _invalidate(cache, division_standings_key(division_id))


def invalidate_pool_standings_cache(cache: Optional[StandingsCache], pool_id: int) -> None:
    _invalidate(cache, pool_standings_key(pool_id))
