import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tournament_engine.cache.standings_cache import TTLMemoryCache
from tournament_engine.config import get_settings
from tournament_engine.database import init_db
from tournament_engine.errors import ConflictError, NotFoundError, ValidationError
from tournament_engine.routes import brackets, divisions, games, pools

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Tournament Structure Engine API")
app.state.standings_cache = TTLMemoryCache()


@app.exception_handler(NotFoundError)
def handle_not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
def handle_validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "issues": exc.issues})


@app.exception_handler(ConflictError)
def handle_conflict(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# Include routers
app.include_router(pools.router, prefix="/api", tags=["pools"])
app.include_router(brackets.router, prefix="/api", tags=["brackets"])
app.include_router(games.router, prefix="/api", tags=["games"])
app.include_router(divisions.router, prefix="/api", tags=["divisions"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Database initialized (%s)", settings.database_url)


@app.get("/api/health")
def health_check():
    return {"app_name": "Tournament Structure Engine API", "status": "healthy"}
