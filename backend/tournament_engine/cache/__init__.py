from tournament_engine.cache.standings_cache import (
    NullCache,
    StandingsCache,
    TTLMemoryCache,
    division_standings_key,
    pool_standings_key,
    team_stats_key,
)

__all__ = [
    "StandingsCache",
    "TTLMemoryCache",
    "NullCache",
    "team_stats_key",
    "division_standings_key",
    "pool_standings_key",
]
