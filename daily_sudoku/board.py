from __future__ import annotations
from typing import Dict, List, Set, Tuple

from daily_sudoku.models import RC, Grid, RegionType

SIZE = 9
BOX = 3
EMPTY = 0
FULL_MASK = (1 << 9) - 1  # 0b111111111


def bit(d: int) -> int:
    return 1 << (d - 1)


def mask_to_digits(mask: int) -> List[int]:
    return [d for d in range(1, 10) if mask & bit(d)]


def box_index(r: int, c: int) -> int:
    return (r // BOX) * BOX + (c // BOX)  # 0..8


def cells_in_box(bi: int) -> List[RC]:
    br = (bi // BOX) * BOX
    bc = (bi % BOX) * BOX
    return [(r, c) for r in range(br, br + BOX) for c in range(bc, bc + BOX)]


ROWS: List[List[RC]] = [[(r, c) for c in range(SIZE)] for r in range(SIZE)]
COLS: List[List[RC]] = [[(r, c) for r in range(SIZE)] for c in range(SIZE)]
BOXES: List[List[RC]] = [cells_in_box(bi) for bi in range(SIZE)]

# (region type, 0-based index, cells)
UNITS: List[Tuple[RegionType, int, List[RC]]] = (
    [(RegionType.ROW, i, cells) for i, cells in enumerate(ROWS)]
    + [(RegionType.COLUMN, i, cells) for i, cells in enumerate(COLS)]
    + [(RegionType.BOX, i, cells) for i, cells in enumerate(BOXES)]
)


def _build_peers() -> Dict[RC, Tuple[RC, ...]]:
    peers_of: Dict[RC, Tuple[RC, ...]] = {}
    for r in range(SIZE):
        for c in range(SIZE):
            peers: Set[RC] = set()
            # row + col + box
            peers.update(ROWS[r])
            peers.update(COLS[c])
            peers.update(BOXES[box_index(r, c)])
            peers.discard((r, c))
            peers_of[(r, c)] = tuple(sorted(peers))
    return peers_of


PEERS: Dict[RC, Tuple[RC, ...]] = _build_peers()


def empty_grid() -> Grid:
    return [[EMPTY] * SIZE for _ in range(SIZE)]


def copy_grid(grid: Grid) -> Grid:
    return [row[:] for row in grid]


def in_bounds(r: int, c: int) -> bool:
    return 0 <= r < SIZE and 0 <= c < SIZE


def check_grid(grid) -> Grid:
    """Validate shape and cell range; returns a defensive copy."""
    if len(grid) != SIZE:
        raise ValueError("Grid must have 9 rows.")
    out: Grid = []
    for row in grid:
        if not isinstance(row, (list, tuple)) or len(row) != SIZE:
            raise ValueError("Each row must have 9 columns.")
        for v in row:
            if type(v) != int or v < 0 or v > 9:
                raise ValueError("Each cell must be an int from 0 to 9.")
        out.append(list(row))
    return out


def parse_81(s: str) -> Grid:
    s = "".join(ch for ch in s if not ch.isspace())
    if len(s) != 81:
        raise ValueError(f"Expected 81 characters after removing whitespace, got {len(s)}")
    grid: Grid = []
    for r in range(SIZE):
        row: List[int] = []
        for c in range(SIZE):
            ch = s[r * SIZE + c]
            if ch in ".0":
                row.append(EMPTY)
            elif ch.isdigit():
                row.append(int(ch))
            else:
                raise ValueError(f"Invalid char '{ch}' in grid.")
        grid.append(row)
    return grid


def grid_to_81(grid: Grid) -> str:
    return "".join(str(grid[r][c]) for r in range(SIZE) for c in range(SIZE))


def is_filled(grid: Grid) -> bool:
    return all(grid[r][c] != EMPTY for r in range(SIZE) for c in range(SIZE))


def empty_cells(grid: Grid) -> List[RC]:
    return [(r, c) for r in range(SIZE) for c in range(SIZE) if grid[r][c] == EMPTY]


def pretty(grid: Grid) -> str:
    lines = []
    for r in range(SIZE):
        if r in (3, 6):
            lines.append("-" * 21)
        row = []
        for c in range(SIZE):
            if c in (3, 6):
                row.append("|")
            v = grid[r][c]
            row.append(str(v) if v != EMPTY else ".")
        lines.append(" ".join(row))
    return "\n".join(lines)


def find_duplicates(grid: Grid) -> List[Tuple[RegionType, int, int, List[RC]]]:
    """
    Every duplicated digit per unit, as (region, unit_index, digit, cells).
    Rows first, then columns, then boxes.
    """
    found = []
    for region, idx, unit in UNITS:
        seen: Dict[int, List[RC]] = {}
        for (r, c) in unit:
            v = grid[r][c]
            if v == EMPTY:
                continue
            seen.setdefault(v, []).append((r, c))
        for d, cells in sorted(seen.items()):
            if len(cells) > 1:
                found.append((region, idx, d, cells))
    return found
