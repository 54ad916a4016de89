"""
API Routes for Games - results, deletion and dependency wiring
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tournament_engine.cache.standings_cache import StandingsCache
from tournament_engine.dependencies import get_standings_cache, get_store
from tournament_engine.errors import NotFoundError
from tournament_engine.models.game import GameUpdate
from tournament_engine.routes.schemas import GameResponse, to_games
from tournament_engine.services import advancement_service, game_service
from tournament_engine.storage.sql import SqlModelStore

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class GameUpdateResponse(BaseModel):
    game: GameResponse
    advanced_game_ids: List[int] = []
    cascaded_game_ids: List[int] = []
    warnings: List[str] = []


class AdvanceRequest(BaseModel):
    winner_team: str
    loser_team: Optional[str] = None


class DependencySourceRequest(BaseModel):
    game_id: int
    takes_winner: bool = True


class DependenciesRequest(BaseModel):
    sources: List[DependencySourceRequest] = Field(default_factory=list)


class DeletionImpactResponse(BaseModel):
    game_id: int
    can_delete: bool
    affected_count: int
    direct_dependents: List[int]
    indirect_dependents: List[int]
    completed_dependents: List[int]
    reason: Optional[str] = None
    warning: str = ""


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/games/{game_id}", response_model=GameResponse)
def get_game(game_id: int, store: SqlModelStore = Depends(get_store)):
    game = store.get_game(game_id)
    if game is None:
        raise NotFoundError("Game", game_id)
    return GameResponse.model_validate(game)


@router.patch("/games/{game_id}", response_model=GameUpdateResponse)
def update_game(
    game_id: int,
    changes: GameUpdate,
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    """
    Record a score or status change.

    Marking a game COMPLETED advances its winner (and loser, where wired)
    into downstream games; advancement problems come back as warnings in the
    server log and never fail the update.
    """
    result = game_service.update_game(store, game_id, changes, cache=cache)
    return GameUpdateResponse(
        game=GameResponse.model_validate(result.game),
        advanced_game_ids=result.advanced_game_ids,
        cascaded_game_ids=result.cascaded_game_ids,
        warnings=result.warnings,
    )


@router.delete("/games/{game_id}")
def delete_game(
    game_id: int,
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    result = game_service.delete_game(store, game_id, cache=cache)
    return {"deleted": result.deleted_game_id, "updated_games": result.updated_game_ids}


@router.get("/games/{game_id}/deletion-impact", response_model=DeletionImpactResponse)
def deletion_impact(game_id: int, store: SqlModelStore = Depends(get_store)):
    return DeletionImpactResponse(**game_service.get_deletion_impact(store, game_id).to_dict())


@router.post("/games/{game_id}/advance", response_model=List[GameResponse])
def advance(game_id: int, request: AdvanceRequest, store: SqlModelStore = Depends(get_store)):
    """Explicit advancement; errors are returned to the caller"""
    if request.loser_team is None:
        target = advancement_service.advance_winner(store, game_id, request.winner_team)
        return to_games([target] if target is not None else [])
    return to_games(advancement_service.advance_teams(store, game_id, request.winner_team, request.loser_team))


@router.put("/games/{game_id}/dependencies", response_model=GameResponse)
def set_dependencies(game_id: int, request: DependenciesRequest, store: SqlModelStore = Depends(get_store)):
    sources = [
        advancement_service.DependencySource(game_id=s.game_id, takes_winner=s.takes_winner)
        for s in request.sources
    ]
    return GameResponse.model_validate(advancement_service.setup_game_dependencies(store, game_id, sources))


@router.delete("/games/{game_id}/dependencies", response_model=GameResponse)
def remove_dependencies(game_id: int, store: SqlModelStore = Depends(get_store)):
    return GameResponse.model_validate(advancement_service.remove_game_dependencies(store, game_id))
