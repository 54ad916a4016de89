from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

MIN_POOL_TEAMS = 2
MAX_POOL_TEAMS = 16


class Pool(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    division_id: str = Field(index=True)
    tournament_id: str
    name: str

    # Ordered team names; frozen once any pool game is completed
    teams: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    advancement_count: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class PoolUpdate(BaseModel):
    """Fields an admin may change on an existing pool (teams go through update_pool_teams)."""

    name: Optional[str] = None
    advancement_count: Optional[int] = None
