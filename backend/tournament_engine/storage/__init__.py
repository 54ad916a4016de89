from tournament_engine.storage.base import TournamentStore
from tournament_engine.storage.sql import SqlModelStore

__all__ = ["TournamentStore", "SqlModelStore"]
