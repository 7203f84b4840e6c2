from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from chain_reaction.api.models import Cell, Grid
from chain_reaction.core.grid import Coord, adjacent_cells, grid_dimensions

MAX_EXPLOSION_WAVES = 1000


@dataclass(frozen=True, slots=True)
class OrbTransfer:
    source: Coord
    target: Coord
    # Position of `target` among the source's neighbours (up, down, left, right order).
    index: int


@dataclass(frozen=True, slots=True)
class ExplosionWave:
    """One synchronous round of explosions. `index` is zero-based."""

    index: int
    exploded: tuple[Coord, ...]
    transfers: tuple[OrbTransfer, ...]


@dataclass(frozen=True, slots=True)
class ExplosionResult:
    grid: Grid
    wave_count: int
    is_runaway: bool


class ChainReaction:
    """Mutable working copy of a grid for one chain reaction.

    The input grid is never touched; `snapshot()` builds a fresh immutable grid.
    """

    def __init__(self, grid: Grid, acting_player_id: str) -> None:
        self.rows, self.cols = grid_dimensions(grid)
        self.acting_player_id = acting_player_id
        self._capacity = [[cell.capacity for cell in row] for row in grid]
        self._orbs = [[cell.orbs for cell in row] for row in grid]
        self._owner: list[list[str | None]] = [[cell.owner_id for cell in row] for row in grid]

    def unstable_cells(self) -> list[Coord]:
        return [
            (r, c)
            for r in range(self.rows)
            for c in range(self.cols)
            if self._orbs[r][c] >= self._capacity[r][c]
        ]

    def _explode(self, index: int, unstable: list[Coord]) -> ExplosionWave:
        # Clear every exploding cell first, then hand out orbs, so the outcome
        # does not depend on the order the unstable cells were found in.
        orbs = [row[:] for row in self._orbs]
        owner = [row[:] for row in self._owner]

        for r, c in unstable:
            orbs[r][c] = 0
            owner[r][c] = None

        transfers: list[OrbTransfer] = []
        for r, c in unstable:
            for i, (nr, nc) in enumerate(adjacent_cells(r, c, self.rows, self.cols)):
                orbs[nr][nc] += 1
                owner[nr][nc] = self.acting_player_id
                transfers.append(OrbTransfer(source=(r, c), target=(nr, nc), index=i))

        self._orbs = orbs
        self._owner = owner
        return ExplosionWave(index=index, exploded=tuple(unstable), transfers=tuple(transfers))

    def run(self, max_waves: int) -> Iterator[ExplosionWave]:
        if max_waves < 1:
            raise ValueError("max_waves must be at least 1")

        for index in range(max_waves):
            unstable = self.unstable_cells()
            if not unstable:
                return
            yield self._explode(index, unstable)

    def snapshot(self) -> Grid:
        return tuple(
            tuple(
                Cell(orbs=self._orbs[r][c], owner_id=self._owner[r][c], capacity=self._capacity[r][c])
                for c in range(self.cols)
            )
            for r in range(self.rows)
        )


def explosion_waves(grid: Grid, acting_player_id: str, max_waves: int = MAX_EXPLOSION_WAVES) -> Iterator[ExplosionWave]:
    """Yield each explosion wave triggered on `grid` until it settles or `max_waves` is hit."""

    yield from ChainReaction(grid, acting_player_id).run(max_waves)


def simulate(grid: Grid, acting_player_id: str, max_waves: int = MAX_EXPLOSION_WAVES) -> ExplosionResult:
    """Resolve every explosion on `grid`, claiming touched cells for `acting_player_id`.

    An exploding cell is emptied completely, including any orbs it collected above
    its capacity, so the total orb count can shrink from one wave to the next.

    The wave cap is the only bound on a non-terminating chain: if unstable cells
    remain after `max_waves` waves the result is flagged as a runaway.
    """

    reaction = ChainReaction(grid, acting_player_id)
    wave_count = 0
    for _ in reaction.run(max_waves):
        wave_count += 1

    is_runaway = wave_count >= max_waves and bool(reaction.unstable_cells())
    return ExplosionResult(grid=reaction.snapshot(), wave_count=wave_count, is_runaway=is_runaway)
