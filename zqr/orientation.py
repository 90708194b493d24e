"""Orientation markers and quarter-turn rotation recovery."""

from zqr.errors import InvalidOrientation
from zqr.grid import MARKER_CELLS, Grid
from zqr.logging import get_logger

log = get_logger("orientation")

# Counter-clockwise rotation that restores the canonical orientation when the
# marker at the same index in MARKER_CELLS is the one that is off
MARKER_ROTATIONS = (0, 90, 270, 180)


def rotate(matrix: list[list], degrees: int) -> list[list]:
    """Rotate a rectangular matrix counter-clockwise by a multiple of 90 degrees.

    Returns a new matrix. Rows and columns swap for 90 and 270 degrees.
    """
    if degrees % 90:
        raise ValueError(f"rotation must be a multiple of 90 degrees, got {degrees}")
    turns = (degrees // 90) % 4
    m = len(matrix)
    n = len(matrix[0]) if m else 0

    if turns == 1:
        return [[matrix[j][n - 1 - i] for j in range(m)] for i in range(n)]
    if turns == 2:
        return [[matrix[m - 1 - i][n - 1 - j] for j in range(n)] for i in range(m)]
    if turns == 3:
        return [[matrix[m - 1 - j][i] for j in range(m)] for i in range(n)]
    return [list(row) for row in matrix]


def set_markers(grid: Grid) -> None:
    """Write the canonical marker pattern: only the top-left marker off."""
    for i, (r, c) in enumerate(MARKER_CELLS):
        grid[r][c] = i != 0


def find_rotation(grid: Grid) -> int:
    """Return the counter-clockwise rotation that makes ``grid`` canonical.

    Exactly one marker must be off, otherwise InvalidOrientation is raised.
    """
    off = [i for i, (r, c) in enumerate(MARKER_CELLS) if not grid[r][c]]
    if len(off) != 1:
        log.debug("orientation rejected: %d markers off", len(off))
        raise InvalidOrientation(len(off))
    return MARKER_ROTATIONS[off[0]]


def normalize(grid: Grid) -> Grid:
    """Return a copy of ``grid`` rotated into canonical orientation."""
    return rotate(grid, find_rotation(grid))
