"""Pool engine: round-robin generation, team-list freeze and pool validation."""
from itertools import combinations

import pytest

from tournament_engine.cache.standings_cache import pool_standings_key
from tournament_engine.errors import ConflictError, NotFoundError, ValidationError
from tournament_engine.models.game import GameStatus
from tournament_engine.models.pool import PoolUpdate
from tournament_engine.services import pool_service
from tests.helpers import DIVISION, TOURNAMENT, play


def _pool(store, name="Pool A", teams=("A", "B", "C"), advancement_count=None, division=DIVISION):
    return pool_service.create_pool(store, division, TOURNAMENT, name, list(teams), advancement_count)


def test_three_team_pool_generates_each_pair_in_order(store):
    pool = _pool(store)
    games = pool_service.generate_pool_games(store, pool.id)

    assert [(g.team_a, g.team_b) for g in games] == [("A", "B"), ("A", "C"), ("B", "C")]
    assert [g.pool_game_number for g in games] == [1, 2, 3]
    assert [g.game_label for g in games] == ["Pool A Game 1", "Pool A Game 2", "Pool A Game 3"]
    for game in games:
        assert game.status == GameStatus.SCHEDULED
        assert (game.score_a, game.score_b) == (0, 0)
        assert game.location_id == ""
        assert game.pool_id == pool.id
        assert game.bracket_id is None


@pytest.mark.parametrize("team_count", [2, 4, 7, 16])
def test_every_unordered_pair_appears_exactly_once(store, team_count):
    teams = [f"Team {i}" for i in range(team_count)]
    pool = _pool(store, teams=teams)

    games = pool_service.generate_pool_games(store, pool.id)

    assert len(games) == team_count * (team_count - 1) // 2
    pairs = [frozenset((g.team_a, g.team_b)) for g in games]
    assert len(set(pairs)) == len(pairs)
    assert set(pairs) == {frozenset(p) for p in combinations(teams, 2)}


@pytest.mark.parametrize(
    "teams, advancement_count, message",
    [
        (["A"], None, "at least 2 teams"),
        ([f"T{i}" for i in range(17)], None, "more than 16 teams"),
        (["A", "B", "a"], None, 'Duplicate team name: "a"'),
        (["A", "", "C"], None, "Team names cannot be empty"),
        (["A", "B", "C"], 4, "cannot exceed number of teams"),
        (["A", "B", "C"], -1, "cannot be negative"),
    ],
)
def test_create_pool_rejects_invalid_configuration(store, teams, advancement_count, message):
    with pytest.raises(ValidationError) as exc_info:
        _pool(store, teams=teams, advancement_count=advancement_count)
    assert message in str(exc_info.value)
    assert store.find_pools(division_id=DIVISION) == []


def test_pool_names_are_unique_per_division(store):
    _pool(store, name="Pool A")

    with pytest.raises(ValidationError, match='Pool name "pool a" is already in use'):
        _pool(store, name="pool a", teams=["D", "E"])

    # Another division may reuse the name
    other = _pool(store, name="Pool A", teams=["D", "E"], division="div-2")
    assert other.id is not None


def test_team_cannot_join_a_second_pool_in_the_division(store):
    _pool(store, name="Pool A", teams=["A", "B"])

    with pytest.raises(ValidationError, match='Team "a" is already assigned to pool Pool A'):
        _pool(store, name="Pool B", teams=["a", "C"])

    assert [p.name for p in store.find_pools(division_id=DIVISION)] == ["Pool A"]
    # Pools of another division are independent
    assert _pool(store, name="Pool B", teams=["A", "C"], division="div-2").id is not None


def test_update_pool_teams_rejects_a_team_from_another_pool(store):
    _pool(store, name="Pool A", teams=["A", "B"])
    pool_b = _pool(store, name="Pool B", teams=["C", "D"])
    pool_service.generate_pool_games(store, pool_b.id)

    with pytest.raises(ValidationError, match="already assigned to pool Pool A"):
        pool_service.update_pool_teams(store, pool_b.id, ["C", "D", "B"])

    assert store.get_pool(pool_b.id).teams == ["C", "D"]
    assert len(store.find_games(pool_id=pool_b.id)) == 1


def test_teams_are_only_written_through_set_pool_teams(store):
    pool = _pool(store)

    store.update_pool(pool.id, PoolUpdate.model_validate({"name": "Pool Z", "teams": ["X", "Y"]}))
    assert store.get_pool(pool.id).teams == ["A", "B", "C"]
    assert store.get_pool(pool.id).name == "Pool Z"

    store.set_pool_teams(pool.id, ["X", "Y"])
    assert store.get_pool(pool.id).teams == ["X", "Y"]
    with pytest.raises(NotFoundError):
        store.set_pool_teams(999, ["X", "Y"])


def test_unknown_pool_is_not_found(store):
    with pytest.raises(NotFoundError):
        pool_service.generate_pool_games(store, 999)
    with pytest.raises(NotFoundError):
        pool_service.update_pool_teams(store, 999, ["A", "B"])


def test_generating_twice_is_refused(store):
    pool = _pool(store)
    pool_service.generate_pool_games(store, pool.id)

    with pytest.raises(ConflictError):
        pool_service.generate_pool_games(store, pool.id)
    assert len(store.find_games(pool_id=pool.id)) == 3


def test_update_pool_teams_replaces_all_games(store, cache):
    pool = _pool(store)
    pool_service.generate_pool_games(store, pool.id)
    cache.set(pool_standings_key(pool.id), [], 60)

    games = pool_service.update_pool_teams(store, pool.id, ["A", "B", "C", "D"], cache=cache)

    assert len(games) == 6
    assert store.get_pool(pool.id).teams == ["A", "B", "C", "D"]
    remaining = store.find_games(pool_id=pool.id)
    assert len(remaining) == 6
    assert [g.pool_game_number for g in pool_service.get_games_by_pool(store, pool.id)] == [1, 2, 3, 4, 5, 6]
    assert pool_standings_key(pool.id) not in cache


def test_update_pool_teams_refused_after_a_completed_game(store):
    pool = _pool(store)
    pool_service.generate_pool_games(store, pool.id)
    play(store, pool.id, "A", "B", 21, 15)

    with pytest.raises(ConflictError):
        pool_service.update_pool_teams(store, pool.id, ["A", "B", "D"])

    assert store.get_pool(pool.id).teams == ["A", "B", "C"]
    assert len(store.find_games(pool_id=pool.id)) == 3


def test_update_pool_teams_validates_before_touching_games(store):
    pool = _pool(store)
    pool_service.generate_pool_games(store, pool.id)

    with pytest.raises(ValidationError):
        pool_service.update_pool_teams(store, pool.id, ["A", "A"])

    assert len(store.find_games(pool_id=pool.id)) == 3


def test_update_pool_renames_and_checks_advancement(store):
    pool = _pool(store, name="Pool A")
    _pool(store, name="Pool B", teams=["D", "E"])

    renamed = pool_service.update_pool(store, pool.id, PoolUpdate(name="Pool C", advancement_count=2))
    assert renamed.name == "Pool C"
    assert renamed.advancement_count == 2

    with pytest.raises(ValidationError, match="already in use"):
        pool_service.update_pool(store, pool.id, PoolUpdate(name="Pool B"))
    with pytest.raises(ValidationError, match="cannot exceed"):
        pool_service.update_pool(store, pool.id, PoolUpdate(advancement_count=5))


def test_delete_pool_removes_its_games(store):
    pool = _pool(store)
    pool_service.generate_pool_games(store, pool.id)

    pool_service.delete_pool(store, pool.id)

    assert store.get_pool(pool.id) is None
    assert store.find_games(division_id=DIVISION) == []


def test_advancing_teams_follow_pool_standings(store):
    pool = _pool(store, advancement_count=2)
    pool_service.generate_pool_games(store, pool.id)
    play(store, pool.id, "A", "B", 21, 10)
    play(store, pool.id, "A", "C", 21, 15)
    play(store, pool.id, "B", "C", 21, 20)

    assert pool_service.get_advancing_teams(store, pool.id) == ["A", "B"]
    assert pool_service.get_advancing_teams(store, pool.id, count=1) == ["A"]
    with pytest.raises(ValidationError):
        pool_service.get_advancing_teams(store, pool.id, count=4)
