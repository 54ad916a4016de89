"""
Hybrid tournament coordination: pool play feeding into brackets.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from tournament_engine.cache.standings_cache import StandingsCache
from tournament_engine.errors import ValidationError
from tournament_engine.models.bracket import Bracket
from tournament_engine.models.game import GameStatus
from tournament_engine.services.advancement_service import seed_bracket_from_pools
from tournament_engine.services.structure_validator import POOL_SEEDED_SOURCES
from tournament_engine.storage.base import TournamentStore

logger = logging.getLogger(__name__)

FINISHED_STATUSES = (GameStatus.COMPLETED, GameStatus.CANCELLED)


@dataclass
class TournamentFormat:
    has_pool_play: bool
    has_brackets: bool
    is_hybrid: bool
    pool_count: int
    bracket_count: int

    def to_dict(self) -> Dict:
        return asdict(self)


def are_pools_complete(store: TournamentStore, division_id: str) -> bool:
    """True when every pool game is completed or cancelled. A division without pools is complete."""
    for pool in store.find_pools(division_id=division_id):
        if any(g.status not in FINISHED_STATUSES for g in store.find_games(pool_id=pool.id)):
            return False
    return True


def advance_pools_to_brackets(
    store: TournamentStore,
    division_id: str,
    cache: Optional[StandingsCache] = None,
) -> List[Bracket]:
    """Seed every pool-seeded bracket of the division from all of its pools."""
    if not are_pools_complete(store, division_id):
        raise ValidationError("Cannot advance to brackets: not all pool games are completed")

    pools = store.find_pools(division_id=division_id)
    if not pools:
        raise ValidationError(f"No pools found for division {division_id}")
    brackets = store.find_brackets(division_id=division_id)
    if not brackets:
        raise ValidationError(f"No brackets found for division {division_id}")

    pool_brackets = [b for b in brackets if b.seeding_source in POOL_SEEDED_SOURCES]
    if not pool_brackets:
        raise ValidationError(f"No brackets in division {division_id} are seeded from pools")

    pool_ids = [p.id for p in pools]
    seeded = [seed_bracket_from_pools(store, b.id, pool_ids, cache=cache) for b in pool_brackets]
    logger.info("Advanced %d pools into %d brackets for division %s", len(pools), len(seeded), division_id)
    return seeded


def get_tournament_format(store: TournamentStore, division_id: str) -> TournamentFormat:
    pool_count = len(store.find_pools(division_id=division_id))
    bracket_count = len(store.find_brackets(division_id=division_id))
    return TournamentFormat(
        has_pool_play=pool_count > 0,
        has_brackets=bracket_count > 0,
        is_hybrid=pool_count > 0 and bracket_count > 0,
        pool_count=pool_count,
        bracket_count=bracket_count,
    )
