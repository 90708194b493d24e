"""Grid codec: text <-> 7x7 grid with orientation markers and checksum.

Layout of a canonical grid (P = payload column bit, M = marker,
S = checksum, O = overflow bit borrowed from a split column)::

      c0 c1 c2 c3 c4 c5 c6
    r0 P  P  P  P  P  P  P
    r1 P  M  P  P  P  M  P
    r2 P  P  P  P  P  P  P
    r3 P  P  P  P  P  P  P
    r4 P  P  P  P  P  P  P
    r5 P  M  P  P  P  M  P
    r6 O  P  S  S  S  P  O

Each column holds one 6-bit symbol code, most significant bit on top.
Columns 1 and 5 skip the marker rows, so their fifth bit sits in row 6 and
their last bit overflows into row 6 of column 0 or 6 respectively.
"""

from zqr.alphabet import CODE_BITS, IGNORE, IGNORE_CODE, code_to_symbol, symbol_to_code
from zqr.errors import ChecksumMismatch, UnknownSymbol
from zqr.grid import CHECKSUM_CELLS, GRID_SIZE, SPLIT_COLUMNS, Grid, check_grid, count_on, new_grid
from zqr.logging import audit, get_logger, trace
from zqr.orientation import normalize, set_markers

log = get_logger("codec")

MESSAGE_LENGTH = GRID_SIZE
CHECKSUM_BITS = len(CHECKSUM_CELLS)
CHECKSUM_MODULUS = 1 << CHECKSUM_BITS


def _int_to_bits(value: int, width: int) -> list[bool]:
    """Convert an integer to a fixed-width list of bits (MSB first)."""
    if not 0 <= value < (1 << width):
        raise ValueError(f"{value} does not fit in {width} bits")
    return [bool((value >> (width - 1 - i)) & 1) for i in range(width)]


def _bits_to_int(bits: list[bool]) -> int:
    """Convert a list of bits (MSB first) back to an integer."""
    n = 0
    for b in bits:
        n = (n << 1) | int(b)
    return n


def _column_cells(col: int) -> list[tuple[int, int]]:
    """Cells holding the six bits of a column's code, MSB first."""
    if col in SPLIT_COLUMNS:
        return [(0, col), (2, col), (3, col), (4, col), (6, col), (6, SPLIT_COLUMNS[col])]
    return [(row, col) for row in range(CODE_BITS)]


def pad_text(text: str) -> str:
    """Right-pad with the ignore marker, or truncate, to exactly 7 symbols."""
    if len(text) > MESSAGE_LENGTH:
        log.warning("text truncated to %d symbols: %r", MESSAGE_LENGTH, text)
        return text[:MESSAGE_LENGTH]
    return text + IGNORE * (MESSAGE_LENGTH - len(text))


def write_column(grid: Grid, col: int, code: int) -> None:
    for (r, c), bit in zip(_column_cells(col), _int_to_bits(code, CODE_BITS)):
        grid[r][c] = bit


def read_column(grid: Grid, col: int) -> int:
    return _bits_to_int([grid[r][c] for r, c in _column_cells(col)])


def compute_checksum(grid: Grid) -> int:
    """On cells outside the checksum field, modulo 8."""
    return count_on(grid, exclude=CHECKSUM_CELLS) % CHECKSUM_MODULUS


def read_checksum(grid: Grid) -> int:
    return _bits_to_int([grid[r][c] for r, c in CHECKSUM_CELLS])


def _write_checksum(grid: Grid, checksum: int) -> None:
    for (r, c), bit in zip(CHECKSUM_CELLS, _int_to_bits(checksum, CHECKSUM_BITS)):
        grid[r][c] = bit


@trace
def encode(text: str) -> Grid:
    """Encode up to 7 symbols into a canonical grid.

    Characters outside the alphabet are written as the ignore marker and
    therefore disappear on decode. Text longer than 7 symbols is truncated.
    """
    message = pad_text(text)
    grid = new_grid()

    for col, symbol in enumerate(message):
        try:
            code = symbol_to_code(symbol)
        except UnknownSymbol:
            log.debug("unknown symbol %r in column %d replaced by %r", symbol, col, IGNORE)
            code = IGNORE_CODE
        write_column(grid, col, code)

    set_markers(grid)
    _write_checksum(grid, compute_checksum(grid))

    audit("code.encoded", logger=log, text=text[:80], message=message)
    return grid


@trace
def decode(grid: Grid) -> str:
    """Read a grid in any quarter-turn orientation back into text.

    Raises InvalidOrientation unless exactly one marker is off, and
    ChecksumMismatch when the stored checksum disagrees with the cells.
    Ignore markers are dropped from the result.
    """
    check_grid(grid)
    grid = normalize(grid)

    stored = read_checksum(grid)
    counted = compute_checksum(grid)
    if stored != counted:
        audit("code.rejected", logger=log, reason="checksum", stored=stored, counted=counted)
        raise ChecksumMismatch(stored, counted)

    symbols = [code_to_symbol(read_column(grid, col)) for col in range(GRID_SIZE)]
    text = "".join(s for s in symbols if s != IGNORE)

    audit("code.decoded", logger=log, text=text)
    return text
