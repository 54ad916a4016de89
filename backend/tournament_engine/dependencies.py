"""
FastAPI dependencies: one store per request session, one standings cache per app.
"""

from fastapi import Depends, Request
from sqlmodel import Session

from tournament_engine.cache.standings_cache import StandingsCache
from tournament_engine.database import get_session
from tournament_engine.storage.sql import SqlModelStore


def get_store(session: Session = Depends(get_session)) -> SqlModelStore:
    return SqlModelStore(session)


def get_standings_cache(request: Request) -> StandingsCache:
    return request.app.state.standings_cache
