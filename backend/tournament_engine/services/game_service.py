"""
Game results and game deletion.

update_game() is the primary action for recording scores and status. Its
side effects (standings cache invalidation, advancing teams when a game
becomes COMPLETED, re-deriving downstream slots when a completed result is
corrected or reopened) are best-effort: they log failures and never undo or
block the update itself.

delete_game() refuses while any downstream game is completed and re-reads
those games immediately before the deleting batch.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from tournament_engine.cache.standings_cache import StandingsCache
from tournament_engine.errors import ConflictError, NotFoundError, ValidationError
from tournament_engine.models.game import MAX_GAME_DEPENDENCIES, Game, GameStatus, GameUpdate
from tournament_engine.services.advancement_service import auto_advance_teams, cascade_result_change, game_outcome
from tournament_engine.services.standings_service import (
    invalidate_division_standings_cache,
    invalidate_pool_standings_cache,
    invalidate_team_stats_cache,
)
from tournament_engine.storage.base import TournamentStore
from tournament_engine.utils.game_graph import GameGraph

logger = logging.getLogger(__name__)

FEED_FIELDS = ("winner_feeds_into_game", "loser_feeds_into_game", "feeds_into_game")
NON_NULL_FIELDS = ("team_a", "team_b", "score_a", "score_b", "status", "location_id", "court")


@dataclass
class GameUpdateResult:
    game: Game
    advanced_game_ids: List[int] = field(default_factory=list)
    cascaded_game_ids: List[int] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class DeletionImpact:
    game_id: int
    can_delete: bool
    direct_dependents: List[int] = field(default_factory=list)
    indirect_dependents: List[int] = field(default_factory=list)
    completed_dependents: List[int] = field(default_factory=list)
    reason: Optional[str] = None
    warning: str = ""

    @property
    def affected_count(self) -> int:
        return len(self.direct_dependents) + len(self.indirect_dependents)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["affected_count"] = self.affected_count
        return data


@dataclass
class DeletionResult:
    deleted_game_id: int
    updated_game_ids: List[int] = field(default_factory=list)


# Scopes a game contributes to: (team names, division, pool)
Scope = Tuple[Tuple[str, ...], str, Optional[int]]


def _scope(game: Game) -> Scope:
    return (tuple(t for t in (game.team_a, game.team_b) if t), game.division_id, game.pool_id)


def _invalidate_scopes(cache: Optional[StandingsCache], *scopes: Scope) -> None:
    for teams, division_id, pool_id in scopes:
        for team in teams:
            invalidate_team_stats_cache(cache, team, division_id)
        invalidate_division_standings_cache(cache, division_id)
        if pool_id is not None:
            invalidate_pool_standings_cache(cache, pool_id)


def _get_game(store: TournamentStore, game_id: int) -> Game:
    game = store.get_game(game_id)
    if game is None:
        raise NotFoundError("Game", game_id)
    return game


def _validate_update(game: Game, values: Dict) -> None:
    errors = []
    for name in NON_NULL_FIELDS:
        if name in values and values[name] is None:
            errors.append(f"{name} cannot be cleared")
    for name in ("score_a", "score_b"):
        if values.get(name) is not None and values[name] < 0:
            errors.append(f"{name} cannot be negative")

    # A game stays bound to the pool or bracket it was generated for
    for name in ("pool_id", "bracket_id"):
        current = getattr(game, name)
        if name in values and current is not None and values[name] != current:
            errors.append(f"Game {game.id} cannot be moved to another {name.split('_')[0]}")
    pool_id = values.get("pool_id", game.pool_id)
    bracket_id = values.get("bracket_id", game.bracket_id)
    if pool_id is not None and bracket_id is not None:
        errors.append("A game cannot belong to both a pool and a bracket")

    deps = values.get("depends_on_games")
    if deps is not None:
        if len(deps) > MAX_GAME_DEPENDENCIES:
            errors.append(f"A game can depend on at most {MAX_GAME_DEPENDENCIES} games")
        if game.id in deps:
            errors.append(f"Game {game.id} cannot depend on itself")

    if errors:
        raise ValidationError.from_issues(errors)


def update_game(
    store: TournamentStore,
    game_id: int,
    changes: GameUpdate,
    cache: Optional[StandingsCache] = None,
) -> GameUpdateResult:
    game = _get_game(store, game_id)
    values = changes.model_dump(exclude_unset=True)
    _validate_update(game, values)

    was_completed = game.status == GameStatus.COMPLETED
    previous = game_outcome(game)
    before = _scope(game)

    with store.batch():
        game = store.update_game(game_id, changes)

    result = GameUpdateResult(game=game)
    _invalidate_scopes(cache, before, _scope(game))

    if game.status == GameStatus.COMPLETED and game.score_a == game.score_b:
        result.warnings.append(f"Game {game_id} was completed with a tied score; no team advances")

    if game.status == GameStatus.COMPLETED and not was_completed:
        result.advanced_game_ids = [g.id for g in auto_advance_teams(store, game_id)]
    elif was_completed:
        # Corrected score or reopened game: move or withdraw what it advanced
        result.cascaded_game_ids = [g.id for g in cascade_result_change(store, game_id, previous)]

    logger.info("Updated game %s (%s)", game_id, ", ".join(sorted(values)) or "no changes")
    return result


# ─── Deletion ────────────────────────────────────────────────────────────

def get_deletion_impact(store: TournamentStore, game_id: int) -> DeletionImpact:
    game = _get_game(store, game_id)
    graph = GameGraph(store.find_games(division_id=game.division_id))
    affected = graph.affected_games(game_id)
    check = graph.check_deletion(game_id)
    return DeletionImpact(
        game_id=game_id,
        can_delete=check.can_delete,
        direct_dependents=[g.id for g in affected.direct],
        indirect_dependents=[g.id for g in affected.indirect],
        completed_dependents=check.completed_dependents,
        reason=check.reason,
        warning=graph.deletion_warning(game_id),
    )


def _detach_dependent(dependent: Game, deleted_id: int) -> GameUpdate:
    """Drop deleted_id from the dependency list; remaining slots stay aligned with their sources."""
    deps = dependent.depends_on_games or []
    slots = dependent.teams()
    remaining = [(dep, slots[i] if i < len(slots) else "") for i, dep in enumerate(deps) if dep != deleted_id]
    teams = [team for _, team in remaining] + [""] * (len(slots) - len(remaining))
    return GameUpdate(depends_on_games=[dep for dep, _ in remaining], team_a=teams[0], team_b=teams[1])


def delete_game(store: TournamentStore, game_id: int, cache: Optional[StandingsCache] = None) -> DeletionResult:
    game = _get_game(store, game_id)
    graph = GameGraph(store.find_games(division_id=game.division_id))
    check = graph.check_deletion(game_id)
    if not check.can_delete:
        raise ConflictError(check.reason)

    affected = graph.affected_games(game_id)
    direct_ids = [g.id for g in affected.direct]

    # Re-read downstream games right before writing; another writer may have completed one
    fresh: Dict[int, Game] = {}
    for dependent in affected.all():
        current = store.get_game(dependent.id, fresh=True)
        if current is None:
            continue
        if current.status == GameStatus.COMPLETED:
            raise ConflictError(f"Cannot delete: dependent game {current.id} has been completed")
        fresh[current.id] = current

    upstream: Set[int] = set(game.depends_on_games or [])
    upstream.update(g.id for g in graph.games.values() if game_id in [getattr(g, f) for f in FEED_FIELDS])
    upstream.discard(game_id)

    scope = _scope(game)
    updated: List[int] = []
    with store.batch():
        for dependent_id in direct_ids:
            dependent = fresh.get(dependent_id)
            if dependent is None:
                continue
            store.update_game(dependent_id, _detach_dependent(dependent, game_id))
            updated.append(dependent_id)

        for source_id in sorted(upstream):
            source = store.get_game(source_id)
            if source is None:
                continue
            cleared = {f: None for f in FEED_FIELDS if getattr(source, f) == game_id}
            if cleared:
                store.update_game(source_id, GameUpdate(**cleared))
                updated.append(source_id)

        store.delete(game)

    _invalidate_scopes(cache, scope)
    logger.info("Deleted game %s; updated %d linked games", game_id, len(updated))
    return DeletionResult(deleted_game_id=game_id, updated_game_ids=updated)
