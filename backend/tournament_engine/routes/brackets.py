"""
API Routes for Brackets - single-elimination trees, seeding and state
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from tournament_engine.cache.standings_cache import StandingsCache
from tournament_engine.dependencies import get_standings_cache, get_store
from tournament_engine.models.bracket import BracketUpdate, SeedingSource
from tournament_engine.routes.schemas import BracketResponse, GameResponse, to_games
from tournament_engine.services import bracket_service
from tournament_engine.services.advancement_service import seed_bracket_from_pools
from tournament_engine.storage.sql import SqlModelStore
from tournament_engine.utils.bracket_seeds import describe_incomplete_bracket

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class BracketCreateRequest(BaseModel):
    tournament_id: str
    name: str
    size: int
    seeding_source: SeedingSource = SeedingSource.manual


class BracketSeedsRequest(BaseModel):
    team_names: List[Optional[str]]


class SeedFromPoolsRequest(BaseModel):
    pool_ids: List[int]


class BracketRoundResponse(BaseModel):
    round_number: int
    name: str
    games: List[GameResponse]


class BracketStateResponse(BaseModel):
    bracket: BracketResponse
    rounds: List[BracketRoundResponse]
    champion: Optional[str] = None


class IncompleteBracketResponse(BaseModel):
    bracket_id: int
    empty_count: int
    empty_positions: List[int]
    can_start: bool
    warning: str


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/divisions/{division_id}/brackets", response_model=BracketResponse, status_code=201)
def create_bracket(division_id: str, request: BracketCreateRequest, store: SqlModelStore = Depends(get_store)):
    bracket = bracket_service.create_bracket(
        store, division_id, request.tournament_id, request.name, request.size, request.seeding_source
    )
    return BracketResponse.model_validate(bracket)


@router.get("/divisions/{division_id}/brackets", response_model=List[BracketResponse])
def list_brackets(division_id: str, store: SqlModelStore = Depends(get_store)):
    return [BracketResponse.model_validate(b) for b in bracket_service.get_brackets_by_division(store, division_id)]


@router.get("/brackets/{bracket_id}", response_model=BracketResponse)
def get_bracket(bracket_id: int, store: SqlModelStore = Depends(get_store)):
    return BracketResponse.model_validate(bracket_service.get_bracket(store, bracket_id))


@router.patch("/brackets/{bracket_id}", response_model=BracketResponse)
def update_bracket(bracket_id: int, changes: BracketUpdate, store: SqlModelStore = Depends(get_store)):
    return BracketResponse.model_validate(bracket_service.update_bracket(store, bracket_id, changes))


@router.delete("/brackets/{bracket_id}")
def delete_bracket(bracket_id: int, store: SqlModelStore = Depends(get_store)):
    bracket_service.delete_bracket(store, bracket_id)
    return {"deleted": bracket_id}


@router.post("/brackets/{bracket_id}/games", response_model=List[GameResponse], status_code=201)
def generate_bracket_games(bracket_id: int, store: SqlModelStore = Depends(get_store)):
    """Generate and wire every round of the bracket"""
    return to_games(bracket_service.generate_bracket_games(store, bracket_id))


@router.get("/brackets/{bracket_id}/games", response_model=List[GameResponse])
def list_bracket_games(
    bracket_id: int,
    round_name: Optional[str] = Query(None, alias="round"),
    store: SqlModelStore = Depends(get_store),
):
    bracket_service.get_bracket(store, bracket_id)
    if round_name:
        return to_games(bracket_service.get_games_by_bracket_round(store, bracket_id, round_name))
    return to_games(bracket_service.get_games_by_bracket(store, bracket_id))


@router.put("/brackets/{bracket_id}/seeds", response_model=BracketResponse)
def set_seeds(bracket_id: int, request: BracketSeedsRequest, store: SqlModelStore = Depends(get_store)):
    return BracketResponse.model_validate(bracket_service.set_bracket_seeds(store, bracket_id, request.team_names))


@router.post("/brackets/{bracket_id}/seed-from-pools", response_model=BracketResponse)
def seed_from_pools(
    bracket_id: int,
    request: SeedFromPoolsRequest,
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    return BracketResponse.model_validate(seed_bracket_from_pools(store, bracket_id, request.pool_ids, cache=cache))


@router.get("/brackets/{bracket_id}/state", response_model=BracketStateResponse)
def bracket_state(bracket_id: int, store: SqlModelStore = Depends(get_store)):
    state = bracket_service.get_bracket_state(store, bracket_id)
    return BracketStateResponse(
        bracket=BracketResponse.model_validate(state.bracket),
        rounds=[
            BracketRoundResponse(round_number=r.round_number, name=r.name, games=to_games(r.games))
            for r in state.rounds
        ],
        champion=state.champion,
    )


@router.get("/brackets/{bracket_id}/incomplete", response_model=IncompleteBracketResponse)
def incomplete_report(bracket_id: int, store: SqlModelStore = Depends(get_store)):
    """Report empty seed positions (byes)"""
    bracket = bracket_service.get_bracket(store, bracket_id)
    report = describe_incomplete_bracket(bracket.seed_list(), bracket.size)
    return IncompleteBracketResponse(
        bracket_id=bracket_id,
        empty_count=report.empty_count,
        empty_positions=report.empty_positions,
        can_start=report.can_start,
        warning=report.warning,
    )
