"""Raster geometry: grid <-> 330x330 black/white image, and corner ordering.

The image is a 15 px black frame, a 10 px white frame, then 7x7 cells of
40 px. Only pure black (0) reads as an on cell.
"""

from typing import NamedTuple

import numpy as np
from PIL import Image, ImageDraw

from zqr.errors import AmbiguousCorners
from zqr.grid import GRID_SIZE, Grid, check_grid, new_grid
from zqr.logging import audit, get_logger, trace

log = get_logger("raster")

CELL_SIZE = 40
BLACK_BORDER = 15
WHITE_BORDER = 10
BORDER_SIZE = BLACK_BORDER + WHITE_BORDER  # 25
IMAGE_SIZE = CELL_SIZE * GRID_SIZE + BORDER_SIZE * 2  # 330

BLACK = 0
WHITE = 255
SAMPLE_MARK_COLOR = (0, 255, 255)


class Point(NamedTuple):
    x: float
    y: float


class OrderedCorners(NamedTuple):
    """Quadrilateral corners in top-left, top-right, bottom-left, bottom-right order."""
    tl: Point
    tr: Point
    bl: Point
    br: Point

    def as_array(self) -> np.ndarray:
        """float32 array of shape (4, 2), rows in TL, TR, BL, BR order."""
        return np.array([tuple(p) for p in self], dtype=np.float32)


def cell_center(row: int, col: int) -> tuple[int, int]:
    """Pixel (x, y) at the centre of a cell in the 330 px image."""
    return (
        BORDER_SIZE + col * CELL_SIZE + CELL_SIZE // 2,
        BORDER_SIZE + row * CELL_SIZE + CELL_SIZE // 2,
    )


def sample_points() -> list[tuple[int, int, int, int]]:
    """The 49 sampling positions as (row, col, x, y)."""
    return [
        (r, c, *cell_center(r, c))
        for r in range(GRID_SIZE)
        for c in range(GRID_SIZE)
    ]


def _pixel_layers() -> np.ndarray:
    """Per-pixel layer index: 0 black frame, 1 white frame, 2 cell area."""
    idx = np.arange(IMAGE_SIZE)
    # Distance of every pixel to the nearest image edge
    edge = np.minimum(idx, IMAGE_SIZE - 1 - idx)
    depth = np.minimum.outer(edge, edge)
    layers = np.full((IMAGE_SIZE, IMAGE_SIZE), 2, dtype=np.uint8)
    layers[depth < BORDER_SIZE] = 1
    layers[depth < BLACK_BORDER] = 0
    return layers


@trace
def grid_to_raster(grid: Grid) -> Image.Image:
    """Render a grid as a 330x330 1-bit image, on cells black."""
    check_grid(grid)
    cells = np.array(grid, dtype=bool)

    # Cell index for every pixel inside the frames
    offsets = np.clip((np.arange(IMAGE_SIZE) - BORDER_SIZE) // CELL_SIZE, 0, GRID_SIZE - 1)
    on = cells[offsets[:, None], offsets[None, :]]

    layers = _pixel_layers()
    pixels = np.where(on, BLACK, WHITE).astype(np.uint8)
    pixels[layers == 1] = WHITE
    pixels[layers == 0] = BLACK

    return Image.fromarray(pixels).convert("1", dither=Image.Dither.NONE)


def _to_gray(raster) -> Image.Image:
    """Convert a PIL image or numpy array to an 8-bit grayscale image.

    Arrays may be uint8, bool (True is white) or floating point in 0..1.
    Float input is scaled to 0..255, and only an exact 0.0 maps to black.
    """
    if isinstance(raster, np.ndarray):
        if raster.dtype == bool:
            raster = np.where(raster, WHITE, BLACK).astype(np.uint8)
        elif np.issubdtype(raster.dtype, np.floating):
            if np.isnan(raster).any() or (raster.size and (raster.min() < 0 or raster.max() > 1)):
                raise ValueError("float raster values must lie in 0..1")
            scaled = np.clip(np.rint(raster * WHITE), 1, WHITE)
            raster = np.where(raster == 0, BLACK, scaled).astype(np.uint8)
        elif raster.dtype != np.uint8:
            raise ValueError(f"unsupported raster dtype {raster.dtype}, expected uint8, bool or float")
        raster = Image.fromarray(raster)
    return raster.convert("L")


@trace
def raster_to_grid(raster, resample: Image.Resampling = Image.Resampling.BOX) -> Grid:
    """Sample the 49 cell centres of a square raster.

    ``raster`` may be a PIL image or a numpy array of any square size; it is
    rescaled to 330x330 first. A sample is on only if it is pure black, so
    the caller is responsible for binarising photographs.
    """
    gray = _to_gray(raster)
    width, height = gray.size
    if width != height:
        raise ValueError(f"raster must be square, got {width}x{height}")
    if width != IMAGE_SIZE:
        log.debug("rescaling raster %dx%d -> %d", width, height, IMAGE_SIZE)
        gray = gray.resize((IMAGE_SIZE, IMAGE_SIZE), resample=resample)

    pixels = np.asarray(gray)
    grid = new_grid()
    for r, c, x, y in sample_points():
        grid[r][c] = bool(pixels[y, x] == BLACK)
    return grid


def draw_sample_points(raster, radius: int = 2) -> Image.Image:
    """Copy of ``raster`` at 330 px with every sampling position marked."""
    gray = _to_gray(raster)
    if gray.size != (IMAGE_SIZE, IMAGE_SIZE):
        gray = gray.resize((IMAGE_SIZE, IMAGE_SIZE), resample=Image.Resampling.BOX)
    img = gray.convert("RGB")
    draw = ImageDraw.Draw(img)
    for _, _, x, y in sample_points():
        draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=SAMPLE_MARK_COLOR)
    return img


@trace
def classify_corners(points, centroid: tuple[float, float] | None = None) -> OrderedCorners:
    """Assign four unordered points to the corners of a quadrilateral.

    Each point is classified by the sign of its offset from the centroid
    (the mean of the points unless one is given, e.g. a contour's
    area-weighted centroid). Image coordinates: y grows downwards.

    Raises AmbiguousCorners if the points cannot be matched one-to-one,
    including when a point lies exactly on an axis through the centroid.
    """
    pts = [Point(float(p[0]), float(p[1])) for p in np.asarray(points, dtype=float).reshape(-1, 2)]
    if len(pts) != 4:
        raise AmbiguousCorners(f"expected 4 points, got {len(pts)}", pts)

    if centroid is None:
        cx = sum(p.x for p in pts) / 4
        cy = sum(p.y for p in pts) / 4
    else:
        cx, cy = float(centroid[0]), float(centroid[1])

    slots: dict[str, Point] = {}
    for p in pts:
        dx, dy = p.x - cx, p.y - cy
        if dx == 0 or dy == 0:
            raise AmbiguousCorners(f"point {tuple(p)} lies on an axis through ({cx:g}, {cy:g})", pts)
        name = ("t" if dy < 0 else "b") + ("l" if dx < 0 else "r")
        if name in slots:
            raise AmbiguousCorners(f"two points in the {name.upper()} quadrant", pts)
        slots[name] = p

    corners = OrderedCorners(**slots)
    audit("corners.classified", logger=log,
          tl=tuple(corners.tl), tr=tuple(corners.tr),
          bl=tuple(corners.bl), br=tuple(corners.br))
    return corners
