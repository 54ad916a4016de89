"""
Advancement Engine: when a game is finalized, populate the team slots of the
games that depend on it.

Slot i of a target game (team_a for 0, team_b for 1) is filled from
depends_on_games[i]. Only team slots of downstream games are written here;
scores and statuses are never touched.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from tournament_engine.cache.standings_cache import StandingsCache
from tournament_engine.errors import ConflictError, NotFoundError, ValidationError
from tournament_engine.models.bracket import Bracket, BracketSeed, BracketUpdate
from tournament_engine.models.game import MAX_GAME_DEPENDENCIES, Game, GameStatus, GameUpdate
from tournament_engine.models.standings import TeamStats
from tournament_engine.services.bracket_service import (
    assign_first_round_teams,
    get_bracket,
    get_first_round_games,
)
from tournament_engine.services.standings_service import get_pool_standings
from tournament_engine.storage.base import TournamentStore
from tournament_engine.utils.game_graph import GameGraph

logger = logging.getLogger(__name__)

SLOT_FIELDS = ("team_a", "team_b")


@dataclass
class DependencySource:
    game_id: int
    takes_winner: bool = True


def _get_game(store: TournamentStore, game_id: int) -> Game:
    game = store.get_game(game_id)
    if game is None:
        raise NotFoundError("Game", game_id)
    return game


def get_winner_and_loser(game: Game) -> Tuple[str, str]:
    if game.status != GameStatus.COMPLETED:
        raise ValidationError(f"Game {game.id} is not completed")
    if game.score_a == game.score_b:
        raise ValidationError(f"Game {game.id} ended in a tie; cannot determine a winner")
    if game.score_a > game.score_b:
        return game.team_a, game.team_b
    return game.team_b, game.team_a


def game_outcome(game: Game) -> Optional[Tuple[str, str]]:
    """(winner, loser) of a decided game, None while it is unfinished or tied."""
    if game.status != GameStatus.COMPLETED or game.score_a == game.score_b:
        return None
    return get_winner_and_loser(game)


def _fed_slot(source: Game, target: Game) -> str:
    deps = target.depends_on_games or []
    if source.id not in deps:
        raise ValidationError(f"Game {source.id} is not listed as a dependency of game {target.id}")
    index = deps.index(source.id)
    if index >= len(SLOT_FIELDS):
        raise ValidationError(f"Game {target.id} has more than {MAX_GAME_DEPENDENCIES} dependencies")
    return SLOT_FIELDS[index]


def _slot_update(source: Game, target: Game, team: str) -> Tuple[str, GameUpdate]:
    """Which slot of target the source feeds, and the update that fills it with team."""
    slot = _fed_slot(source, target)

    current = getattr(target, slot)
    if current and current != team:
        logger.warning("Game %s: replacing %s %r with %r from game %s", target.id, slot, current, team, source.id)
    return slot, GameUpdate(**{slot: team})


def advance_winner(store: TournamentStore, game_id: int, winner_team: str) -> Optional[Game]:
    """Push winner_team into the winner target. Returns the updated target, or None for a final."""
    game = _get_game(store, game_id)
    if game.status != GameStatus.COMPLETED:
        raise ValidationError(f"Game {game_id} must be completed before advancing")
    if not winner_team or winner_team not in game.teams():
        raise ValidationError(f'"{winner_team}" did not play in game {game_id}')

    target_id = game.winner_target
    if target_id is None:
        return None

    target = _get_game(store, target_id)
    _, update = _slot_update(game, target, winner_team)
    with store.batch():
        target = store.update_game(target.id, update)
    logger.info("Advanced %s from game %s to game %s", winner_team, game_id, target_id)
    return target


def advance_teams(store: TournamentStore, game_id: int, winner_team: str, loser_team: str) -> List[Game]:
    """Winner to the winner target, loser to loser_feeds_into_game if one exists."""
    game = _get_game(store, game_id)
    if game.status != GameStatus.COMPLETED:
        raise ValidationError(f"Game {game_id} must be completed before advancing")
    if winner_team == loser_team:
        raise ValidationError("Winner and loser must be different teams")
    teams = game.teams()
    for team in (winner_team, loser_team):
        if not team or team not in teams:
            raise ValidationError(f'"{team}" did not play in game {game_id}')

    planned: List[Tuple[int, GameUpdate]] = []
    for target_id, team in ((game.winner_target, winner_team), (game.loser_feeds_into_game, loser_team)):
        if target_id is None:
            continue
        target = _get_game(store, target_id)
        _, update = _slot_update(game, target, team)
        planned.append((target_id, update))

    updated = []
    with store.batch():
        for target_id, update in planned:
            updated.append(store.update_game(target_id, update))
    if updated:
        logger.info("Advanced teams from game %s into games %s", game_id, [g.id for g in updated])
    return updated


def auto_advance_teams(store: TournamentStore, game_id: int) -> List[Game]:
    """
    Derive winner and loser from the score and advance both.

    This runs as a side effect of marking a game complete, so every failure
    (tie, missing target, broken wiring) is logged and an empty list returned.
    """
    try:
        game = _get_game(store, game_id)
        winner, loser = get_winner_and_loser(game)
        return advance_teams(store, game_id, winner, loser)
    except Exception:
        logger.exception("Auto-advance failed for game %s", game_id)
        return []


def cascade_result_change(
    store: TournamentStore,
    game_id: int,
    previous: Optional[Tuple[str, str]],
) -> List[Game]:
    """
    Bring downstream slots in line after a decided result changed.

    `previous` is the (winner, loser) the game had before the update, None if
    it was undecided. A corrected score moves the new winner and loser into
    the fed slots; a reopened or tied game empties them. A slot is only
    rewritten while it still holds the team advanced from the old result, and
    completed downstream games are left alone. Like auto-advancement this is
    a side effect: failures are logged and an empty list returned.
    """
    try:
        game = _get_game(store, game_id)
        current = game_outcome(game)
        if current == previous:
            return []
        old_winner, old_loser = previous or ("", "")
        new_winner, new_loser = current or ("", "")

        planned: List[Tuple[int, GameUpdate]] = []
        for target_id, old_team, new_team in (
            (game.winner_target, old_winner, new_winner),
            (game.loser_feeds_into_game, old_loser, new_loser),
        ):
            if target_id is None or old_team == new_team:
                continue
            target = _get_game(store, target_id)
            slot = _fed_slot(game, target)
            held = getattr(target, slot)
            if target.status == GameStatus.COMPLETED:
                logger.warning("Game %s is already completed; keeping %s %r", target_id, slot, held)
                continue
            if held not in ("", old_team, new_team):
                logger.warning(
                    "Game %s: %s holds %r, not %r from game %s; left unchanged", target_id, slot, held, old_team, game_id
                )
                continue
            planned.append((target_id, GameUpdate(**{slot: new_team})))

        updated = []
        with store.batch():
            for target_id, update in planned:
                updated.append(store.update_game(target_id, update))
        if updated:
            logger.info("Re-derived slots of games %s after game %s changed", [g.id for g in updated], game_id)
        return updated
    except Exception:
        logger.exception("Cascade failed for game %s", game_id)
        return []


# ─── Dependency wiring ───────────────────────────────────────────────────

def _unlink(game: Game, target_id: int) -> Dict[str, Optional[int]]:
    """Feed pointers on game that point at target_id, cleared."""
    cleared = {}
    for field_name in ("winner_feeds_into_game", "loser_feeds_into_game", "feeds_into_game"):
        if getattr(game, field_name) == target_id:
            cleared[field_name] = None
    return cleared


def setup_game_dependencies(
    store: TournamentStore,
    target_game_id: int,
    sources: Sequence[DependencySource],
) -> Game:
    """Wire 1-2 source games into target; their winner or loser fills the matching slot."""
    if not sources:
        raise ValidationError("Must provide at least one source game")
    if len(sources) > MAX_GAME_DEPENDENCIES:
        raise ValidationError(
            f"Cannot set up more than {MAX_GAME_DEPENDENCIES} source games. Provided: {len(sources)}"
        )
    source_ids = [s.game_id for s in sources]
    if target_game_id in source_ids:
        raise ValidationError(f"Game {target_game_id} cannot depend on itself")
    if len(set(source_ids)) != len(source_ids):
        raise ValidationError("The same source game is listed more than once")

    target = _get_game(store, target_game_id)
    source_games = [_get_game(store, gid) for gid in source_ids]

    graph = GameGraph(store.find_games(division_id=target.division_id))
    if graph.would_create_cycle(target_game_id, source_ids):
        raise ValidationError(f"Wiring games {source_ids} into game {target_game_id} would create a cycle")

    stale = [gid for gid in (target.depends_on_games or []) if gid not in source_ids]

    with store.batch():
        for gid in stale:
            previous = store.get_game(gid)
            if previous is None:
                continue
            cleared = _unlink(previous, target_game_id)
            if cleared:
                store.update_game(gid, GameUpdate(**cleared))

        target = store.update_game(target_game_id, GameUpdate(depends_on_games=source_ids))

        for source, game in zip(sources, source_games):
            changes = _unlink(game, target_game_id)
            if source.takes_winner:
                changes["winner_feeds_into_game"] = target_game_id
                changes["feeds_into_game"] = target_game_id
            else:
                changes["loser_feeds_into_game"] = target_game_id
            store.update_game(game.id, GameUpdate(**changes))

    logger.info("Set up dependencies for game %s from %d source games", target_game_id, len(sources))
    return target


def remove_game_dependencies(store: TournamentStore, game_id: int) -> Game:
    """Unwire every source of game_id and clear both of its team slots."""
    game = _get_game(store, game_id)
    with store.batch():
        for source_id in game.depends_on_games or []:
            source = store.get_game(source_id)
            if source is None:
                continue
            cleared = _unlink(source, game_id)
            if cleared:
                store.update_game(source_id, GameUpdate(**cleared))
        game = store.update_game(game_id, GameUpdate(depends_on_games=[], team_a="", team_b=""))
    logger.info("Removed dependencies from game %s", game_id)
    return game


# ─── Pool -> bracket seeding ─────────────────────────────────────────────

def pool_seeding_order(standings_per_pool: Sequence[Sequence[TeamStats]]) -> List[TeamStats]:
    """All rank-1 teams, then all rank-2, ...; each rank group by point differential, descending."""
    by_rank: Dict[int, List[TeamStats]] = {}
    for standings in standings_per_pool:
        for entry in standings:
            by_rank.setdefault(entry.rank, []).append(entry)

    order: List[TeamStats] = []
    for rank in sorted(by_rank):
        order.extend(sorted(by_rank[rank], key=lambda s: -s.point_differential))
    return order


def seed_bracket_from_pools(
    store: TournamentStore,
    bracket_id: int,
    pool_ids: Sequence[int],
    cache: Optional[StandingsCache] = None,
) -> Bracket:
    bracket = get_bracket(store, bracket_id)
    standings = [get_pool_standings(store, pool_id, cache=cache) for pool_id in pool_ids]
    order = pool_seeding_order(standings)

    if len(order) > bracket.size:
        raise ValidationError(f"Too many teams ({len(order)}) for bracket size ({bracket.size})")
    if any(g.status == GameStatus.COMPLETED for g in get_first_round_games(store, bracket_id)):
        raise ConflictError(f"Cannot reseed bracket {bracket.name}: first-round games have been completed")

    seeds: List[BracketSeed] = []
    for index, seed in enumerate(bracket.seed_list()):
        if index < len(order):
            entry = order[index]
            seeds.append(
                BracketSeed(
                    position=seed.position,
                    team_name=entry.team_name,
                    source_pool_id=entry.pool_id,
                    source_pool_rank=entry.rank,
                )
            )
        else:
            seeds.append(seed)

    with store.batch():
        bracket = store.update_bracket(bracket_id, BracketUpdate(seeds=seeds))
        assign_first_round_teams(store, bracket_id, seeds)

    logger.info("Seeded bracket %s with %d teams from %d pools", bracket.name, len(order), len(pool_ids))
    return bracket
