"""7x7 cell grid: dimensions, reserved cells and small helpers.

A grid is a plain ``list[list[bool]]`` indexed ``grid[row][col]``,
True meaning a black (on) cell.
"""

GRID_SIZE = 7

# Orientation markers, in the order they are inspected when reading
MARKER_CELLS: tuple[tuple[int, int], ...] = ((1, 1), (1, 5), (5, 1), (5, 5))

# 3-bit checksum, most significant bit first
CHECKSUM_CELLS: tuple[tuple[int, int], ...] = ((6, 2), (6, 3), (6, 4))

# Columns that lose rows 1 and 5 to the markers, and the neighbour whose
# row-6 cell receives their last bit
SPLIT_COLUMNS: dict[int, int] = {1: 0, 5: 6}

Grid = list[list[bool]]


def new_grid() -> Grid:
    """Return an all-off 7x7 grid."""
    return [[False] * GRID_SIZE for _ in range(GRID_SIZE)]


def copy_grid(grid: Grid) -> Grid:
    return [list(row) for row in grid]


def check_grid(grid: Grid) -> None:
    """Raise ValueError unless ``grid`` is a 7x7 matrix."""
    if len(grid) != GRID_SIZE or any(len(row) != GRID_SIZE for row in grid):
        dims = f"{len(grid)}x{len(grid[0]) if grid else 0}"
        raise ValueError(f"grid must be {GRID_SIZE}x{GRID_SIZE}, got {dims}")


def count_on(grid: Grid, exclude: tuple[tuple[int, int], ...] = ()) -> int:
    """Count on cells, skipping the ``exclude`` positions."""
    skip = set(exclude)
    return sum(
        1
        for r, row in enumerate(grid)
        for c, cell in enumerate(row)
        if cell and (r, c) not in skip
    )


def payload_cells() -> list[tuple[int, int]]:
    """The 42 cells that carry character bits, in row-major order."""
    reserved = set(MARKER_CELLS) | set(CHECKSUM_CELLS)
    return [
        (r, c)
        for r in range(GRID_SIZE)
        for c in range(GRID_SIZE)
        if (r, c) not in reserved
    ]


def format_grid(grid: Grid) -> str:
    """Render a grid as rows of ``1``/``0`` separated by spaces."""
    return "\n".join(" ".join("1" if cell else "0" for cell in row) for row in grid)


def parse_grid(text: str) -> Grid:
    """Parse the output of :func:`format_grid` back into a grid.

    Whitespace is ignored, so rows may also be written as ``1010011``.
    """
    rows = []
    for line in text.strip().splitlines():
        digits = [ch for ch in line if not ch.isspace()]
        if not digits:
            continue
        if any(ch not in "01" for ch in digits):
            raise ValueError(f"grid rows may only contain 0 and 1: {line!r}")
        rows.append([ch == "1" for ch in digits])
    check_grid(rows)
    return rows
