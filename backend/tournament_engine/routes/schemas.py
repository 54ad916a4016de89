"""
Response models shared by the pool, bracket and game routes.

Entities are converted explicitly (from_attributes) so committed rows are
reloaded through the session before serialization.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from tournament_engine.models.bracket import BracketSeed, SeedingSource
from tournament_engine.models.game import GameStatus


class PoolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    division_id: str
    tournament_id: str
    name: str
    teams: List[str]
    advancement_count: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class BracketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    division_id: str
    tournament_id: str
    name: str
    size: int
    seeding_source: SeedingSource
    seeds: List[BracketSeed]
    created_at: datetime
    updated_at: datetime


class GameResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: str
    division_id: str
    team_a: str
    team_b: str
    score_a: int
    score_b: int
    status: GameStatus
    pool_id: Optional[int] = None
    pool_game_number: Optional[int] = None
    bracket_id: Optional[int] = None
    bracket_round: Optional[str] = None
    bracket_round_number: Optional[int] = None
    bracket_position: Optional[int] = None
    game_label: Optional[str] = None
    depends_on_games: List[int] = []
    winner_feeds_into_game: Optional[int] = None
    loser_feeds_into_game: Optional[int] = None
    feeds_into_game: Optional[int] = None
    start_time: Optional[datetime] = None
    location_id: str = ""
    court: str = ""


def to_games(games) -> List[GameResponse]:
    return [GameResponse.model_validate(g) for g in games]
