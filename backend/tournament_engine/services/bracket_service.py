"""
Bracket Engine: single-elimination brackets.

Round 1 pairs seeds adjacently (position 2p against 2p+1), not 1-vs-N. Later
rounds start with empty team slots and depend on the two games below them;
every non-final game feeds its winner into game floor(index / 2) of the next
round. Generation is one batch so a bracket is never left half-wired.
"""

import logging
from dataclasses import dataclass, field
from math import log2
from typing import Dict, List, Optional, Sequence

from tournament_engine.errors import ConflictError, NotFoundError, ValidationError
from tournament_engine.models.bracket import (
    Bracket,
    BracketSeed,
    BracketUpdate,
    SeedingSource,
    dump_seeds,
    empty_seeds,
)
from tournament_engine.models.game import Game, GameStatus, GameUpdate
from tournament_engine.services.structure_validator import (
    errors_only,
    validate_bracket_config,
    validate_bracket_size,
)
from tournament_engine.storage.base import TournamentStore
from tournament_engine.utils.bracket_seeds import fill_incomplete_seeds

logger = logging.getLogger(__name__)


@dataclass
class BracketRound:
    round_number: int
    name: str
    games: List[Game] = field(default_factory=list)


@dataclass
class BracketState:
    bracket: Bracket
    rounds: List[BracketRound] = field(default_factory=list)
    champion: Optional[str] = None


def get_round_name(round_number: int, total_rounds: int) -> str:
    rounds_from_final = total_rounds - round_number
    if rounds_from_final == 0:
        return "Finals"
    if rounds_from_final == 1:
        return "Semifinals"
    if rounds_from_final == 2:
        return "Quarterfinals"
    return f"Round {round_number}"


def total_rounds(size: int) -> int:
    return int(log2(size))


def create_bracket(
    store: TournamentStore,
    division_id: str,
    tournament_id: str,
    name: str,
    size: int,
    seeding_source: SeedingSource = SeedingSource.manual,
) -> Bracket:
    errors = errors_only(
        validate_bracket_config(
            name, size, seeding_source, existing_brackets=store.find_brackets(division_id=division_id)
        )
    )
    if errors:
        raise ValidationError.from_issues(errors)

    bracket = store.add(
        Bracket(
            division_id=division_id,
            tournament_id=tournament_id,
            name=name.strip(),
            size=size,
            seeding_source=SeedingSource(seeding_source),
            seeds=dump_seeds(empty_seeds(size)),
        )
    )
    logger.info("Created bracket %s (%s), size %d", bracket.id, bracket.name, size)
    return bracket


def get_bracket(store: TournamentStore, bracket_id: int) -> Bracket:
    bracket = store.get_bracket(bracket_id)
    if bracket is None:
        raise NotFoundError("Bracket", bracket_id)
    return bracket


def get_brackets_by_division(store: TournamentStore, division_id: str) -> List[Bracket]:
    return store.find_brackets(division_id=division_id)


def _bracket_order(game: Game):
    return (game.bracket_round_number or 0, game.bracket_position or 0, game.id)


def get_games_by_bracket(store: TournamentStore, bracket_id: int) -> List[Game]:
    return sorted(store.find_games(bracket_id=bracket_id), key=_bracket_order)


def get_games_by_bracket_round(store: TournamentStore, bracket_id: int, round_name: str) -> List[Game]:
    return sorted(store.find_games(bracket_id=bracket_id, bracket_round=round_name), key=_bracket_order)


def get_first_round_games(store: TournamentStore, bracket_id: int) -> List[Game]:
    return sorted(store.find_games(bracket_id=bracket_id, bracket_round_number=1), key=_bracket_order)


def get_bracket_state(store: TournamentStore, bracket_id: int) -> BracketState:
    bracket = get_bracket(store, bracket_id)
    state = BracketState(bracket=bracket)
    by_round: Dict[int, BracketRound] = {}
    for game in get_games_by_bracket(store, bracket_id):
        number = game.bracket_round_number or 0
        if number not in by_round:
            by_round[number] = BracketRound(round_number=number, name=game.bracket_round or "")
            state.rounds.append(by_round[number])
        by_round[number].games.append(game)

    if state.rounds:
        final_round = state.rounds[-1]
        if len(final_round.games) == 1:
            final = final_round.games[0]
            if final.status == GameStatus.COMPLETED and final.score_a != final.score_b:
                state.champion = final.team_a if final.score_a > final.score_b else final.team_b
    return state


def generate_bracket_games(store: TournamentStore, bracket_id: int) -> List[Game]:
    """S seeds -> S-1 games across log2(S) rounds, fully wired."""
    bracket = get_bracket(store, bracket_id)
    errors = errors_only(validate_bracket_size(bracket.size))
    if errors:
        raise ValidationError.from_issues(errors)
    if store.find_games(bracket_id=bracket_id):
        raise ConflictError(f"Bracket {bracket.name} already has games")

    size = bracket.size
    rounds_total = total_rounds(size)
    seeds = fill_incomplete_seeds(bracket.seed_list(), size)
    rounds: List[List[Game]] = []

    with store.batch():
        for round_number in range(1, rounds_total + 1):
            round_name = get_round_name(round_number, rounds_total)
            games_in_round = size // (2 ** round_number)
            current: List[Game] = []
            for index in range(games_in_round):
                game = Game(
                    tournament_id=bracket.tournament_id,
                    division_id=bracket.division_id,
                    bracket_id=bracket.id,
                    bracket_round=round_name,
                    bracket_round_number=round_number,
                    bracket_position=index + 1,
                    status=GameStatus.SCHEDULED,
                    game_label=f"{bracket.name} {round_name} Game {index + 1}",
                )
                if round_number == 1:
                    game.team_a = seeds[2 * index].team_name or ""
                    game.team_b = seeds[2 * index + 1].team_name or ""
                else:
                    previous = rounds[-1]
                    game.depends_on_games = [previous[2 * index].id, previous[2 * index + 1].id]
                current.append(store.add(game))
            rounds.append(current)

        # Feed pointers need the ids of the next round, so they go in last
        for round_index, games in enumerate(rounds[:-1]):
            next_round = rounds[round_index + 1]
            for index, game in enumerate(games):
                target_id = next_round[index // 2].id
                store.update_game(
                    game.id, GameUpdate(winner_feeds_into_game=target_id, feeds_into_game=target_id)
                )

    generated = [g for games in rounds for g in games]
    logger.info("Generated %d games across %d rounds for bracket %s", len(generated), rounds_total, bracket.name)
    return generated


def assign_first_round_teams(store: TournamentStore, bracket_id: int, seeds: Sequence[BracketSeed]) -> List[Game]:
    """Re-derive round-1 team slots from seeds with the adjacent pairing rule. Caller owns the batch."""
    games = get_first_round_games(store, bracket_id)
    updated = []
    for game in games:
        index = (game.bracket_position or 1) - 1
        if 2 * index + 1 >= len(seeds):
            continue
        updated.append(
            store.update_game(
                game.id,
                GameUpdate(
                    team_a=seeds[2 * index].team_name or "",
                    team_b=seeds[2 * index + 1].team_name or "",
                ),
            )
        )
    return updated


def _ensure_first_round_open(store: TournamentStore, bracket: Bracket) -> None:
    if any(g.status == GameStatus.COMPLETED for g in get_first_round_games(store, bracket.id)):
        raise ConflictError(f"Cannot reseed bracket {bracket.name}: first-round games have been completed")


def _write_seeds(store: TournamentStore, bracket: Bracket, seeds: List[BracketSeed], changes: BracketUpdate) -> Bracket:
    _ensure_first_round_open(store, bracket)
    with store.batch():
        bracket = store.update_bracket(bracket.id, changes)
        assign_first_round_teams(store, bracket.id, seeds)
    return bracket


def set_bracket_seeds(store: TournamentStore, bracket_id: int, team_names: Sequence[Optional[str]]) -> Bracket:
    """Manual seeding: names fill positions 1..; empty entries and the remainder are byes."""
    bracket = get_bracket(store, bracket_id)
    if len(team_names) > bracket.size:
        raise ValidationError(f"Cannot seed {len(team_names)} teams into a bracket of size {bracket.size}")

    seeds = fill_incomplete_seeds(
        [
            BracketSeed(position=i, team_name=name.strip())
            for i, name in enumerate(team_names, start=1)
            if name and name.strip()
        ],
        bracket.size,
    )
    errors = errors_only(validate_bracket_config(bracket.name, bracket.size, bracket.seeding_source, seeds))
    if errors:
        raise ValidationError.from_issues(errors)

    bracket = _write_seeds(store, bracket, seeds, BracketUpdate(seeds=seeds))
    logger.info("Seeded bracket %s with %d teams", bracket.name, sum(1 for s in seeds if s.team_name))
    return bracket


def update_bracket(store: TournamentStore, bracket_id: int, changes: BracketUpdate) -> Bracket:
    bracket = get_bracket(store, bracket_id)
    values = changes.model_dump(exclude_unset=True)
    seeds = changes.seeds if "seeds" in values else None
    siblings = store.find_brackets(division_id=bracket.division_id)
    errors = errors_only(
        validate_bracket_config(
            values.get("name", bracket.name),
            bracket.size,
            values.get("seeding_source", bracket.seeding_source),
            seeds,
            existing_brackets=siblings,
            exclude_bracket_id=bracket.id,
        )
    )
    if errors:
        raise ValidationError.from_issues(errors)

    if seeds is not None:
        return _write_seeds(store, bracket, list(seeds), changes)
    return store.update_bracket(bracket_id, changes)


def delete_bracket(store: TournamentStore, bracket_id: int) -> None:
    bracket = get_bracket(store, bracket_id)
    games = store.find_games(bracket_id=bracket_id)
    if any(g.status == GameStatus.COMPLETED for g in games):
        raise ConflictError(f"Cannot delete bracket {bracket.name}: games have already been completed")

    with store.batch():
        for game in games:
            store.delete(game)
        store.delete(bracket)
    logger.info("Deleted bracket %s and %d games", bracket_id, len(games))
