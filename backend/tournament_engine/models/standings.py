from typing import Optional

from pydantic import BaseModel


class TeamStats(BaseModel):
    """Computed record for one team in a scope (division or pool). Never persisted."""

    team_name: str
    division_id: str
    pool_id: Optional[int] = None
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    point_differential: int = 0
    games_played: int = 0
    rank: int = 0  # 0 until ranked; pool rank in pool standings
