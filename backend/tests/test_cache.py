"""Standings cache collaborator."""
from tournament_engine.cache.standings_cache import (
    NullCache,
    TTLMemoryCache,
    division_standings_key,
    pool_standings_key,
    team_stats_key,
)


def test_key_space():
    assert team_stats_key("Hawks", "div-1") == "team-stats:Hawks:div-1"
    assert division_standings_key("div-1") == "division-standings:div-1"
    assert pool_standings_key(7) == "pool-standings:7"


def test_entries_expire_after_ttl():
    now = [0.0]
    cache = TTLMemoryCache(clock=lambda: now[0])
    cache.set("k", {"rank": 1}, ttl_seconds=300)

    now[0] = 299.9
    assert cache.get("k") == {"rank": 1}
    now[0] = 300.0
    assert cache.get("k") is None


def test_values_are_copied_in_and_out():
    cache = TTLMemoryCache()
    value = [{"team_name": "A", "wins": 1}]
    cache.set("k", value, 60)

    value[0]["wins"] = 5
    cached = cache.get("k")
    cached[0]["wins"] = 9

    assert cache.get("k") == [{"team_name": "A", "wins": 1}]


def test_invalidate_and_clear():
    cache = TTLMemoryCache()
    cache.set("a", 1, 60)
    cache.set("b", 2, 60)

    cache.invalidate("a")
    cache.invalidate("missing")
    assert "a" not in cache
    assert "b" in cache

    cache.clear()
    assert cache.get("b") is None


def test_null_cache_never_hits():
    cache = NullCache()
    cache.set("k", 1, 60)
    assert cache.get("k") is None
    cache.invalidate("k")
