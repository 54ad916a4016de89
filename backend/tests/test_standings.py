"""Standings engine: the completed-game fold, ranking paths and cache use."""
import pytest

from tournament_engine.cache.standings_cache import (
    NullCache,
    TTLMemoryCache,
    division_standings_key,
    pool_standings_key,
    team_stats_key,
)
from tournament_engine.errors import NotFoundError
from tournament_engine.models.game import GameStatus, GameUpdate
from tournament_engine.services import pool_service, standings_service
from tournament_engine.services.standings_service import compute_team_stats
from tests.helpers import DIVISION, TOURNAMENT, make_game, play


def _by_name(stats):
    return {s.team_name: s for s in stats}


def test_fold_counts_wins_losses_and_points():
    games = [
        make_game(1, "A", "B", 21, 15),
        make_game(2, "A", "C", 18, 21),
        make_game(3, "B", "C", 21, 19),
    ]

    stats = _by_name(compute_team_stats(["A", "B", "C"], games, DIVISION))

    assert (stats["A"].wins, stats["A"].losses) == (1, 1)
    assert (stats["A"].points_for, stats["A"].points_against) == (39, 36)
    assert stats["A"].point_differential == 3
    assert (stats["B"].wins, stats["B"].losses, stats["B"].point_differential) == (1, 1, -4)
    assert (stats["C"].wins, stats["C"].losses, stats["C"].point_differential) == (1, 1, 1)


def test_tied_completed_game_counts_as_played_but_not_won_or_lost():
    stats = _by_name(compute_team_stats(["A", "B"], [make_game(1, "A", "B", 20, 20)], DIVISION))

    for team in ("A", "B"):
        assert stats[team].games_played == 1
        assert stats[team].wins == 0
        assert stats[team].losses == 0
        assert stats[team].points_for == 20
        assert stats[team].points_against == 20


def test_only_completed_games_are_folded():
    games = [
        make_game(1, "A", "B", 21, 3, status=GameStatus.IN_PROGRESS),
        make_game(2, "A", "B", 21, 3, status=GameStatus.SCHEDULED),
        make_game(3, "A", "B", 21, 3, status=GameStatus.CANCELLED),
    ]

    stats = compute_team_stats(["A", "B"], games, DIVISION)

    assert all(s.games_played == 0 and s.points_for == 0 for s in stats)


def test_standings_invariants_hold_for_every_team():
    games = [
        make_game(1, "A", "B", 21, 15),
        make_game(2, "C", "D", 10, 10),
        make_game(3, "A", "C", 30, 28),
        make_game(4, "B", "D", 5, 21),
        make_game(5, "A", "D", 0, 0, status=GameStatus.SCHEDULED),
    ]

    for entry in compute_team_stats(["A", "B", "C", "D"], games, DIVISION):
        assert entry.point_differential == entry.points_for - entry.points_against
        assert entry.wins + entry.losses <= entry.games_played


def test_division_standings_rank_by_wins_then_differential(store):
    for game in [
        make_game(None, "A", "B", 21, 19),
        make_game(None, "C", "D", 21, 5),
        make_game(None, "A", "C", 21, 20),
        make_game(None, "D", "B", 15, 14),
    ]:
        store.add(game)

    standings = standings_service.get_division_standings(store, DIVISION)

    assert [(s.team_name, s.rank) for s in standings] == [("A", 1), ("C", 2), ("D", 3), ("B", 4)]


def test_division_standings_simple_path_keeps_equal_records_in_order(store):
    store.add(make_game(None, "Zed", "Amy", 21, 10, status=GameStatus.SCHEDULED))

    standings = standings_service.get_division_standings(store, DIVISION)

    assert [s.team_name for s in standings] == ["Zed", "Amy"]
    assert [s.rank for s in standings] == [1, 2]


def test_calculate_team_stats_projects_one_team(store):
    store.add(make_game(None, "A", "B", 21, 15))
    store.add(make_game(None, "C", "A", 21, 12))
    store.add(make_game(None, "B", "C", 21, 11))

    stats = standings_service.calculate_team_stats(store, "A", DIVISION)

    assert (stats.wins, stats.losses, stats.games_played) == (1, 1, 2)
    assert (stats.points_for, stats.points_against) == (33, 36)
    assert stats.rank == 0
    assert len(standings_service.get_team_games(store, "A", DIVISION)) == 2


def test_pool_standings_use_tiebreaks(store):
    pool = pool_service.create_pool(store, DIVISION, TOURNAMENT, "Pool A", ["C", "B", "A"])
    pool_service.generate_pool_games(store, pool.id)
    # Three-way cycle with identical margins: resolved alphabetically
    play(store, pool.id, "A", "B", 21, 19)
    play(store, pool.id, "B", "C", 21, 19)
    play(store, pool.id, "C", "A", 21, 19)

    standings = standings_service.get_pool_standings(store, pool.id)

    assert [(s.team_name, s.rank) for s in standings] == [("A", 1), ("B", 2), ("C", 3)]
    assert all(s.pool_id == pool.id for s in standings)


def test_pool_standings_unknown_pool(store):
    with pytest.raises(NotFoundError):
        standings_service.get_pool_standings(store, 404)


def test_division_standings_are_cached_until_invalidated(store, cache):
    game = store.add(make_game(None, "A", "B", 21, 15))
    first = standings_service.get_division_standings(store, DIVISION, cache=cache)
    assert division_standings_key(DIVISION) in cache

    # Changed behind the engine's back: the cached snapshot is served
    store.update_game(game.id, GameUpdate(score_a=10, score_b=21))
    assert standings_service.get_division_standings(store, DIVISION, cache=cache)[0].team_name == "A"
    assert standings_service.get_division_standings(store, DIVISION, cache=cache, use_cache=False)[0].team_name == "B"

    standings_service.invalidate_division_standings_cache(cache, DIVISION)
    fresh = standings_service.get_division_standings(store, DIVISION, cache=cache)
    assert fresh[0].team_name == "B"
    assert first[0].team_name == "A"


def test_cache_entries_expire(store):
    now = [1000.0]
    cache = TTLMemoryCache(clock=lambda: now[0])
    store.add(make_game(None, "A", "B", 21, 15))

    standings_service.calculate_team_stats(store, "A", DIVISION, cache=cache)
    assert team_stats_key("A", DIVISION) in cache

    now[0] += 301
    assert team_stats_key("A", DIVISION) not in cache


def test_cached_results_are_copies(store, cache):
    pool = pool_service.create_pool(store, DIVISION, TOURNAMENT, "Pool A", ["A", "B"])
    pool_service.generate_pool_games(store, pool.id)
    play(store, pool.id, "A", "B", 21, 3)

    standings = standings_service.get_pool_standings(store, pool.id, cache=cache)
    standings[0].wins = 99

    assert standings_service.get_pool_standings(store, pool.id, cache=cache)[0].wins == 1
    assert pool_standings_key(pool.id) in cache


def test_null_cache_always_recomputes(store):
    game = store.add(make_game(None, "A", "B", 21, 15))
    cache = NullCache()
    standings_service.get_division_standings(store, DIVISION, cache=cache)

    store.update_game(game.id, GameUpdate(score_a=1))

    assert standings_service.get_division_standings(store, DIVISION, cache=cache)[0].team_name == "B"


def test_invalidation_failures_are_swallowed(caplog):
    class BrokenCache(TTLMemoryCache):
        def invalidate(self, key):
            raise RuntimeError("cache offline")

    standings_service.invalidate_pool_standings_cache(BrokenCache(), 1)

    assert "Failed to invalidate" in caplog.text
