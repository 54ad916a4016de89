"""
Storage collaborator contract.

The engine only needs document-style access: get by id, equality-filtered
queries, insert, typed field updates, delete and an atomic multi-write batch.
Services receive a TournamentStore instance; nothing looks up a global session.
"""

from typing import Any, ContextManager, List, Optional, Protocol, TypeVar, Union

from tournament_engine.models.bracket import Bracket, BracketUpdate
from tournament_engine.models.game import Game, GameUpdate
from tournament_engine.models.pool import Pool, PoolUpdate

Entity = TypeVar("Entity", Pool, Bracket, Game)


class TournamentStore(Protocol):
    def get_pool(self, pool_id: int) -> Optional[Pool]: ...

    def get_bracket(self, bracket_id: int) -> Optional[Bracket]: ...

    def get_game(self, game_id: int, fresh: bool = False) -> Optional[Game]: ...

    def find_pools(self, **filters: Any) -> List[Pool]: ...

    def find_brackets(self, **filters: Any) -> List[Bracket]: ...

    def find_games(self, **filters: Any) -> List[Game]: ...

    def add(self, entity: Entity) -> Entity: ...

    def update_pool(self, pool_id: int, changes: PoolUpdate) -> Pool: ...

    def set_pool_teams(self, pool_id: int, teams: List[str]) -> Pool: ...

    def update_bracket(self, bracket_id: int, changes: BracketUpdate) -> Bracket: ...

    def update_game(self, game_id: int, changes: GameUpdate) -> Game: ...

    def delete(self, entity: Union[Pool, Bracket, Game]) -> None: ...

    def batch(self) -> ContextManager["TournamentStore"]: ...
