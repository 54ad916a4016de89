"""
SQLModel-backed implementation of the storage collaborator.

Writes outside a batch commit immediately. Inside `batch()` they are flushed
(so new rows get ids) and committed once when the outermost batch exits;
any exception rolls the whole batch back.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Type, Union

from sqlmodel import Session, select

from tournament_engine.errors import NotFoundError
from tournament_engine.models.bracket import Bracket, BracketUpdate, dump_seeds
from tournament_engine.models.game import Game, GameUpdate
from tournament_engine.models.pool import Pool, PoolUpdate

logger = logging.getLogger(__name__)


class SqlModelStore:
    def __init__(self, session: Session):
        self.session = session
        self._batch_depth = 0

    # ── reads ────────────────────────────────────────────────────────────

    def get_pool(self, pool_id: int) -> Optional[Pool]:
        return self.session.get(Pool, pool_id)

    def get_bracket(self, bracket_id: int) -> Optional[Bracket]:
        return self.session.get(Bracket, bracket_id)

    def get_game(self, game_id: int, fresh: bool = False) -> Optional[Game]:
        if fresh:
            # Bypass the identity map so a concurrent change is seen
            return self.session.get(Game, game_id, populate_existing=True)
        return self.session.get(Game, game_id)

    def _find(self, model: Type, filters: Dict[str, Any]) -> List:
        query = select(model)
        for column, value in filters.items():
            query = query.where(getattr(model, column) == value)
        return list(self.session.exec(query.order_by(model.id)).all())

    def find_pools(self, **filters: Any) -> List[Pool]:
        return self._find(Pool, filters)

    def find_brackets(self, **filters: Any) -> List[Bracket]:
        return self._find(Bracket, filters)

    def find_games(self, **filters: Any) -> List[Game]:
        return self._find(Game, filters)

    # ── writes ───────────────────────────────────────────────────────────

    def add(self, entity):
        self.session.add(entity)
        self.session.flush()
        self._commit()
        return entity

    def update_pool(self, pool_id: int, changes: PoolUpdate) -> Pool:
        return self._apply(self._require_pool(pool_id), changes.model_dump(exclude_unset=True))

    def set_pool_teams(self, pool_id: int, teams: List[str]) -> Pool:
        # Only the pool engine writes teams, together with regenerated fixtures
        return self._apply(self._require_pool(pool_id), {"teams": list(teams)})

    def _require_pool(self, pool_id: int) -> Pool:
        pool = self.get_pool(pool_id)
        if pool is None:
            raise NotFoundError("Pool", pool_id)
        return pool

    def update_bracket(self, bracket_id: int, changes: BracketUpdate) -> Bracket:
        bracket = self.get_bracket(bracket_id)
        if bracket is None:
            raise NotFoundError("Bracket", bracket_id)
        values = changes.model_dump(exclude_unset=True)
        if changes.seeds is not None:
            values["seeds"] = dump_seeds(changes.seeds)
        return self._apply(bracket, values)

    def update_game(self, game_id: int, changes: GameUpdate) -> Game:
        game = self.get_game(game_id)
        if game is None:
            raise NotFoundError("Game", game_id)
        values = changes.model_dump(exclude_unset=True)
        if "depends_on_games" in values:
            values["depends_on_games"] = list(values["depends_on_games"] or [])
        return self._apply(game, values)

    def delete(self, entity: Union[Pool, Bracket, Game]) -> None:
        self.session.delete(entity)
        self.session.flush()
        self._commit()

    def _apply(self, entity, values: Dict[str, Any]):
        for field_name, value in values.items():
            # JSON columns are only change-tracked on reassignment
            setattr(entity, field_name, value)
        entity.updated_at = datetime.utcnow()
        self.session.add(entity)
        self.session.flush()
        self._commit()
        return entity

    # ── transactions ─────────────────────────────────────────────────────

    @contextmanager
    def batch(self) -> Iterator["SqlModelStore"]:
        self._batch_depth += 1
        try:
            yield self
        except Exception:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                logger.debug("Rolling back batch")
                self.session.rollback()
            raise
        else:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self.session.commit()

    def _commit(self) -> None:
        if self._batch_depth == 0:
            self.session.commit()
