"""
API Routes for Pools - round-robin groups and their fixtures
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from tournament_engine.cache.standings_cache import StandingsCache
from tournament_engine.dependencies import get_standings_cache, get_store
from tournament_engine.models.pool import PoolUpdate
from tournament_engine.models.standings import TeamStats
from tournament_engine.routes.schemas import GameResponse, PoolResponse, to_games
from tournament_engine.services import pool_service
from tournament_engine.services.standings_service import get_pool_standings
from tournament_engine.storage.sql import SqlModelStore

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PoolCreateRequest(BaseModel):
    tournament_id: str
    name: str
    teams: List[str]
    advancement_count: Optional[int] = None


class PoolTeamsRequest(BaseModel):
    teams: List[str]


class AdvancingTeamsResponse(BaseModel):
    pool_id: int
    teams: List[str]


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/divisions/{division_id}/pools", response_model=PoolResponse, status_code=201)
def create_pool(division_id: str, request: PoolCreateRequest, store: SqlModelStore = Depends(get_store)):
    pool = pool_service.create_pool(
        store, division_id, request.tournament_id, request.name, request.teams, request.advancement_count
    )
    return PoolResponse.model_validate(pool)


@router.get("/divisions/{division_id}/pools", response_model=List[PoolResponse])
def list_pools(division_id: str, store: SqlModelStore = Depends(get_store)):
    return [PoolResponse.model_validate(p) for p in pool_service.get_pools_by_division(store, division_id)]


@router.get("/pools/{pool_id}", response_model=PoolResponse)
def get_pool(pool_id: int, store: SqlModelStore = Depends(get_store)):
    return PoolResponse.model_validate(pool_service.get_pool(store, pool_id))


@router.patch("/pools/{pool_id}", response_model=PoolResponse)
def update_pool(
    pool_id: int,
    changes: PoolUpdate,
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    return PoolResponse.model_validate(pool_service.update_pool(store, pool_id, changes, cache=cache))


@router.delete("/pools/{pool_id}")
def delete_pool(
    pool_id: int,
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    pool_service.delete_pool(store, pool_id, cache=cache)
    return {"deleted": pool_id}


@router.post("/pools/{pool_id}/games", response_model=List[GameResponse], status_code=201)
def generate_pool_games(pool_id: int, store: SqlModelStore = Depends(get_store)):
    """Generate the round-robin fixtures for a pool"""
    return to_games(pool_service.generate_pool_games(store, pool_id))


@router.get("/pools/{pool_id}/games", response_model=List[GameResponse])
def list_pool_games(pool_id: int, store: SqlModelStore = Depends(get_store)):
    pool_service.get_pool(store, pool_id)
    return to_games(pool_service.get_games_by_pool(store, pool_id))


@router.put("/pools/{pool_id}/teams", response_model=List[GameResponse])
def update_pool_teams(
    pool_id: int,
    request: PoolTeamsRequest,
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    """Replace the pool's teams and regenerate its fixtures (refused once a game is completed)"""
    return to_games(pool_service.update_pool_teams(store, pool_id, request.teams, cache=cache))


@router.get("/pools/{pool_id}/standings", response_model=List[TeamStats])
def pool_standings(
    pool_id: int,
    use_cache: bool = Query(True),
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    return get_pool_standings(store, pool_id, cache=cache, use_cache=use_cache)


@router.get("/pools/{pool_id}/advancing", response_model=AdvancingTeamsResponse)
def advancing_teams(
    pool_id: int,
    count: Optional[int] = Query(None),
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    teams = pool_service.get_advancing_teams(store, pool_id, count=count, cache=cache)
    return AdvancingTeamsResponse(pool_id=pool_id, teams=teams)
