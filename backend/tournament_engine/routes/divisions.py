"""
API Routes for Divisions - standings, structure validation and pool-to-bracket advancement
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query

from tournament_engine.cache.standings_cache import StandingsCache
from tournament_engine.dependencies import get_standings_cache, get_store
from tournament_engine.models.standings import TeamStats
from tournament_engine.routes.schemas import BracketResponse
from tournament_engine.services import structure_service
from tournament_engine.services.standings_service import calculate_team_stats, get_division_standings
from tournament_engine.services.structure_validator import validate_structure
from tournament_engine.storage.sql import SqlModelStore

router = APIRouter()


@router.get("/divisions/{division_id}/standings", response_model=List[TeamStats])
def division_standings(
    division_id: str,
    use_cache: bool = Query(True),
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    return get_division_standings(store, division_id, cache=cache, use_cache=use_cache)


@router.get("/divisions/{division_id}/teams/{team_name}/stats", response_model=TeamStats)
def team_stats(
    division_id: str,
    team_name: str,
    use_cache: bool = Query(True),
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    return calculate_team_stats(store, team_name, division_id, cache=cache, use_cache=use_cache)


@router.get("/divisions/{division_id}/validation")
def validate_division(division_id: str, store: SqlModelStore = Depends(get_store)) -> Dict[str, Any]:
    """Read-only structural check of the division's pools, brackets and games"""
    return validate_structure(store, division_id).to_dict()


@router.get("/divisions/{division_id}/format")
def tournament_format(division_id: str, store: SqlModelStore = Depends(get_store)) -> Dict[str, Any]:
    data = structure_service.get_tournament_format(store, division_id).to_dict()
    data["pools_complete"] = structure_service.are_pools_complete(store, division_id)
    return data


@router.post("/divisions/{division_id}/advance-to-brackets", response_model=List[BracketResponse])
def advance_to_brackets(
    division_id: str,
    store: SqlModelStore = Depends(get_store),
    cache: StandingsCache = Depends(get_standings_cache),
):
    brackets = structure_service.advance_pools_to_brackets(store, division_id, cache=cache)
    return [BracketResponse.model_validate(b) for b in brackets]
