from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import JSON, String
from sqlmodel import Column, Field, SQLModel

MAX_GAME_DEPENDENCIES = 2


class GameStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Game(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: str
    division_id: str = Field(index=True)

    # Team names; "" means the slot has not been filled yet
    team_a: str = Field(default="")
    team_b: str = Field(default="")
    score_a: int = Field(default=0)
    score_b: int = Field(default=0)
    status: GameStatus = Field(default=GameStatus.SCHEDULED, sa_column=Column(String, nullable=False))

    # Structure: a game belongs to a pool or a bracket, never both
    pool_id: Optional[int] = Field(default=None, foreign_key="pool.id", index=True)
    pool_game_number: Optional[int] = Field(default=None)
    bracket_id: Optional[int] = Field(default=None, foreign_key="bracket.id", index=True)
    bracket_round: Optional[str] = Field(default=None)  # "Round 1" | "Quarterfinals" | "Semifinals" | "Finals"
    bracket_round_number: Optional[int] = Field(default=None)
    bracket_position: Optional[int] = Field(default=None)  # 1-based within round
    game_label: Optional[str] = Field(default=None)

    # Dependency graph: slot i (team_a, team_b) is filled from depends_on_games[i]
    depends_on_games: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    winner_feeds_into_game: Optional[int] = Field(default=None)
    loser_feeds_into_game: Optional[int] = Field(default=None)
    feeds_into_game: Optional[int] = Field(default=None)  # legacy alias of winner_feeds_into_game

    # Opaque scheduling fields, passed through untouched
    start_time: Optional[datetime] = Field(default=None)
    location_id: str = Field(default="")
    court: str = Field(default="")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def winner_target(self) -> Optional[int]:
        return self.winner_feeds_into_game or self.feeds_into_game

    @property
    def is_completed(self) -> bool:
        return self.status == GameStatus.COMPLETED

    def teams(self) -> List[str]:
        return [self.team_a, self.team_b]


class GameUpdate(BaseModel):
    """Explicit set of game fields callers may change; unset fields are left alone."""

    team_a: Optional[str] = None
    team_b: Optional[str] = None
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    status: Optional[GameStatus] = None
    pool_id: Optional[int] = None
    bracket_id: Optional[int] = None
    depends_on_games: Optional[List[int]] = None
    winner_feeds_into_game: Optional[int] = None
    loser_feeds_into_game: Optional[int] = None
    feeds_into_game: Optional[int] = None
    start_time: Optional[datetime] = None
    location_id: Optional[str] = None
    court: Optional[str] = None
