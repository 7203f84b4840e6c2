from __future__ import annotations

from collections.abc import Sequence

from chain_reaction.api.models import Cell, Grid, Player

Coord = tuple[int, int]


def _require_board(rows: int, cols: int) -> None:
    # A 1-wide board has cells that are corners on both axes; the corner/edge rule has no answer there.
    if rows < 2 or cols < 2:
        raise ValueError(f"Board must be at least 2x2 (got {rows}x{cols})")


def capacity_at(row: int, col: int, rows: int, cols: int) -> int:
    """Critical mass of a cell: 2 in the corners, 3 along the edges, 4 inside."""

    _require_board(rows, cols)
    if not (0 <= row < rows and 0 <= col < cols):
        raise ValueError(f"({row}, {col}) is outside a {rows}x{cols} board")

    on_row_edge = row == 0 or row == rows - 1
    on_col_edge = col == 0 or col == cols - 1
    if on_row_edge and on_col_edge:
        return 2
    if on_row_edge or on_col_edge:
        return 3
    return 4


def create_grid(rows: int, cols: int) -> Grid:
    _require_board(rows, cols)
    return tuple(
        tuple(Cell(orbs=0, owner_id=None, capacity=capacity_at(r, c, rows, cols)) for c in range(cols))
        for r in range(rows)
    )


def grid_dimensions(grid: Sequence[Sequence[Cell]]) -> Coord:
    rows = len(grid)
    if rows == 0:
        raise ValueError("Grid has no rows")
    cols = len(grid[0])
    if any(len(row) != cols for row in grid):
        raise ValueError("Grid rows have mismatched lengths")
    _require_board(rows, cols)
    return rows, cols


def in_bounds(row: int, col: int, rows: int, cols: int) -> bool:
    return 0 <= row < rows and 0 <= col < cols


def adjacent_cells(row: int, col: int, rows: int, cols: int) -> list[Coord]:
    """Orthogonal neighbours inside the board, in up/down/left/right order."""

    out: list[Coord] = []
    if row > 0:
        out.append((row - 1, col))
    if row < rows - 1:
        out.append((row + 1, col))
    if col > 0:
        out.append((row, col - 1))
    if col < cols - 1:
        out.append((row, col + 1))
    return out


def count_player_orbs(grid: Grid, players: Sequence[Player]) -> list[int]:
    """Total orbs per player, aligned with `players`. Orbs of unknown owners are ignored."""

    index_by_id = {p.id: i for i, p in enumerate(players)}
    counts = [0] * len(players)
    for row in grid:
        for cell in row:
            if cell.owner_id is None:
                continue
            idx = index_by_id.get(cell.owner_id)
            if idx is not None:
                counts[idx] += cell.orbs
    return counts


def pretty(grid: Grid) -> str:
    """Compact text rendering (`<orbs><owner initial>` per cell), handy in logs and failing tests."""

    lines: list[str] = []
    for row in grid:
        parts = [f"{cell.orbs}{(cell.owner_id or '.')[0]}" if cell.orbs else " ." for cell in row]
        lines.append(" ".join(parts))
    return "\n".join(lines)
