from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import JSON, String
from sqlmodel import Column, Field, SQLModel

VALID_BRACKET_SIZES = (4, 8, 16, 32)


class SeedingSource(str, Enum):
    manual = "manual"
    pools = "pools"
    mixed = "mixed"


class BracketSeed(BaseModel):
    position: int  # 1..size
    team_name: Optional[str] = None
    source_pool_id: Optional[int] = None
    source_pool_rank: Optional[int] = None


class Bracket(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    division_id: str = Field(index=True)
    tournament_id: str
    name: str
    size: int
    seeding_source: SeedingSource = Field(default=SeedingSource.manual, sa_column=Column(String))

    # Serialized BracketSeed entries, always exactly `size` long
    seeds: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def seed_list(self) -> List[BracketSeed]:
        return [BracketSeed.model_validate(s) for s in self.seeds or []]


class BracketUpdate(BaseModel):
    name: Optional[str] = None
    seeding_source: Optional[SeedingSource] = None
    seeds: Optional[List[BracketSeed]] = None


def empty_seeds(size: int) -> List[BracketSeed]:
    return [BracketSeed(position=i) for i in range(1, size + 1)]


def dump_seeds(seeds: List[BracketSeed]) -> List[Dict[str, Any]]:
    return [s.model_dump() for s in seeds]
