"""
Game dependency graph.

Games form a DAG: an edge runs from a source game to every game that lists it
in `depends_on_games` (equivalently, that it feeds through its
winner/loser/legacy feed pointers). Games are held in an arena indexed by id
and every traversal is iterative with an explicit visited set, so a corrupted
(cyclic) graph is reported instead of looping.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from tournament_engine.models.game import Game, GameStatus


@dataclass
class AffectedGames:
    direct: List[Game] = field(default_factory=list)
    indirect: List[Game] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.direct) + len(self.indirect)

    def all(self) -> List[Game]:
        return self.direct + self.indirect


@dataclass
class DeletionCheck:
    can_delete: bool
    affected_count: int
    reason: Optional[str] = None
    completed_dependents: List[int] = field(default_factory=list)


class GameGraph:
    def __init__(self, games: Iterable[Game]):
        self.games: Dict[int, Game] = {}
        self._dependents: Dict[int, List[int]] = {}
        for game in games:
            self.games[game.id] = game
        for game in self.games.values():
            for source_id in game.depends_on_games or []:
                self._dependents.setdefault(source_id, []).append(game.id)

    def get(self, game_id: int) -> Optional[Game]:
        return self.games.get(game_id)

    def _edges_from(self, game_id: int) -> List[int]:
        """Downstream ids: declared dependents plus any feed pointers."""
        downstream = list(self._dependents.get(game_id, []))
        game = self.games.get(game_id)
        if game is not None:
            for target in (game.winner_feeds_into_game, game.loser_feeds_into_game, game.feeds_into_game):
                if target is not None and target not in downstream:
                    downstream.append(target)
        return downstream

    def direct_dependents(self, game_id: int) -> List[Game]:
        return [self.games[g] for g in self._dependents.get(game_id, []) if g in self.games]

    def affected_games(self, game_id: int) -> AffectedGames:
        """Direct dependents and every game reachable beyond them."""
        direct = self.direct_dependents(game_id)
        direct_ids = {g.id for g in direct}
        indirect: List[Game] = []
        visited: Set[int] = {game_id}
        queue = deque(g.id for g in direct)
        visited.update(direct_ids)
        while queue:
            current = queue.popleft()
            for dep in self.direct_dependents(current):
                if dep.id in visited:
                    continue
                visited.add(dep.id)
                indirect.append(dep)
                queue.append(dep.id)
        return AffectedGames(direct=direct, indirect=indirect)

    def cascade_deletion_plan(self, game_id: int) -> List[Game]:
        """Games to delete if the whole downstream tree goes: deepest first, the game itself last."""
        order: List[Game] = []
        visited: Set[int] = set()
        # Iterative post-order DFS
        stack = [(game_id, False)]
        while stack:
            current, expanded = stack.pop()
            if expanded:
                game = self.games.get(current)
                if game is not None:
                    order.append(game)
                continue
            if current in visited:
                continue
            visited.add(current)
            stack.append((current, True))
            for dep in reversed(self._dependents.get(current, [])):
                if dep not in visited:
                    stack.append((dep, False))
        return order

    def check_deletion(self, game_id: int) -> DeletionCheck:
        affected = self.affected_games(game_id)
        completed = [g.id for g in affected.all() if g.status == GameStatus.COMPLETED]
        if completed:
            return DeletionCheck(
                can_delete=False,
                affected_count=affected.total,
                reason=f"Cannot delete: {len(completed)} dependent game(s) have been completed",
                completed_dependents=completed,
            )
        return DeletionCheck(can_delete=True, affected_count=affected.total)

    def deletion_warning(self, game_id: int) -> str:
        game = self.games.get(game_id)
        affected = self.affected_games(game_id)
        if affected.total == 0:
            if game is not None and game.status == GameStatus.COMPLETED:
                return "This game has been completed. Deleting it will affect standings and statistics."
            return ""

        lines = [f"Deleting this game will affect {affected.total} other game(s):"]
        if affected.direct:
            lines.append(f"Direct dependents ({len(affected.direct)}):")
            lines.extend(f"- {g.game_label or g.id}" for g in affected.direct)
        if affected.indirect:
            lines.append(f"Indirect dependents ({len(affected.indirect)}):")
            lines.extend(f"- {g.game_label or g.id}" for g in affected.indirect)
        lines.append("All dependent games will need to be updated or deleted.")
        return "\n".join(lines)

    def reaches(self, start_id: int, target_id: int) -> bool:
        """True if target_id is downstream of (or equal to) start_id."""
        visited: Set[int] = set()
        stack = [start_id]
        while stack:
            current = stack.pop()
            if current == target_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            stack.extend(self._edges_from(current))
        return False

    def would_create_cycle(self, target_id: int, source_ids: Iterable[int]) -> bool:
        """Would wiring source -> target for each source close a cycle?"""
        return any(self.reaches(target_id, source_id) for source_id in source_ids)

    def find_cycles(self) -> List[int]:
        """Ids of games that sit on a dependency cycle (three-colour DFS)."""
        white, grey, black = 0, 1, 2
        colour: Dict[int, int] = {gid: white for gid in self.games}
        on_cycle: Set[int] = set()

        for root in sorted(self.games):
            if colour[root] != white:
                continue
            path: List[int] = []
            stack = [(root, iter(self._edges_from(root)))]
            colour[root] = grey
            path.append(root)
            while stack:
                node, edges = stack[-1]
                advanced = False
                for nxt in edges:
                    if nxt not in colour:
                        continue  # dangling reference, reported elsewhere
                    if colour[nxt] == grey:
                        on_cycle.update(path[path.index(nxt):])
                    elif colour[nxt] == white:
                        colour[nxt] = grey
                        path.append(nxt)
                        stack.append((nxt, iter(self._edges_from(nxt))))
                        advanced = True
                        break
                if not advanced:
                    stack.pop()
                    path.pop()
                    colour[node] = black
        return sorted(on_cycle)
