from tournament_engine.models.bracket import Bracket, BracketSeed, BracketUpdate, SeedingSource
from tournament_engine.models.game import Game, GameStatus, GameUpdate
from tournament_engine.models.pool import Pool, PoolUpdate
from tournament_engine.models.standings import TeamStats

__all__ = [
    "Pool",
    "PoolUpdate",
    "Bracket",
    "BracketSeed",
    "BracketUpdate",
    "SeedingSource",
    "Game",
    "GameStatus",
    "GameUpdate",
    "TeamStats",
]
