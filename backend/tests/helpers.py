"""Shared builders for engine tests."""

from typing import List, Optional

from tournament_engine.models.game import Game, GameStatus, GameUpdate
from tournament_engine.storage.sql import SqlModelStore

DIVISION = "div-1"
TOURNAMENT = "tourn-1"


def make_game(
    game_id: int,
    team_a: str = "",
    team_b: str = "",
    score_a: int = 0,
    score_b: int = 0,
    status: GameStatus = GameStatus.COMPLETED,
    depends_on: Optional[List[int]] = None,
    feeds_into: Optional[int] = None,
    **extra,
) -> Game:
    """Detached game for pure (no database) tests."""
    return Game(
        id=game_id,
        tournament_id=TOURNAMENT,
        division_id=DIVISION,
        team_a=team_a,
        team_b=team_b,
        score_a=score_a,
        score_b=score_b,
        status=status,
        depends_on_games=depends_on or [],
        winner_feeds_into_game=feeds_into,
        feeds_into_game=feeds_into,
        **extra,
    )


def finish(store: SqlModelStore, game_id: int, score_a: int, score_b: int) -> Game:
    """Record a final score directly in storage (no advancement side effects)."""
    return store.update_game(
        game_id, GameUpdate(score_a=score_a, score_b=score_b, status=GameStatus.COMPLETED)
    )


def play(store: SqlModelStore, pool_id: int, winner: str, loser: str, winner_score: int, loser_score: int) -> Game:
    """Complete the pool game between two teams, whichever side each is on."""
    for game in store.find_games(pool_id=pool_id):
        if {game.team_a, game.team_b} == {winner, loser}:
            if game.team_a == winner:
                return finish(store, game.id, winner_score, loser_score)
            return finish(store, game.id, loser_score, winner_score)
    raise AssertionError(f"no game between {winner} and {loser} in pool {pool_id}")
