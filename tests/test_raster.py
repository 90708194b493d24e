import itertools

import numpy as np
import pytest
from PIL import Image

from zqr.codec import decode, encode
from zqr.errors import AmbiguousCorners
from zqr.grid import GRID_SIZE
from zqr.raster import (
    BORDER_SIZE,
    CELL_SIZE,
    IMAGE_SIZE,
    SAMPLE_MARK_COLOR,
    OrderedCorners,
    Point,
    cell_center,
    classify_corners,
    draw_sample_points,
    grid_to_raster,
    raster_to_grid,
    sample_points,
)


def test_geometry_constants():
    assert BORDER_SIZE == 25
    assert CELL_SIZE == 40
    assert IMAGE_SIZE == 330


def test_raster_format(hello_raster):
    assert hello_raster.size == (330, 330)
    assert hello_raster.mode == "1"
    values = set(np.unique(np.asarray(hello_raster.convert("L"))))
    assert values <= {0, 255}


def test_black_outer_border(hello_raster):
    pixels = np.asarray(hello_raster.convert("L"))
    assert (pixels[:15, :] == 0).all()
    assert (pixels[315:, :] == 0).all()
    assert (pixels[:, :15] == 0).all()
    assert (pixels[:, 315:] == 0).all()


def test_white_inner_border(hello_raster):
    pixels = np.asarray(hello_raster.convert("L"))
    assert (pixels[15:25, 15:315] == 255).all()
    assert (pixels[305:315, 15:315] == 255).all()
    assert (pixels[15:315, 15:25] == 255).all()
    assert (pixels[15:315, 305:315] == 255).all()


def test_cells_fill_their_squares(hello_grid, hello_raster):
    pixels = np.asarray(hello_raster.convert("L"))
    for r in range(GRID_SIZE):
        for c in range(GRID_SIZE):
            y0 = BORDER_SIZE + r * CELL_SIZE
            x0 = BORDER_SIZE + c * CELL_SIZE
            block = pixels[y0:y0 + CELL_SIZE, x0:x0 + CELL_SIZE]
            expected = 0 if hello_grid[r][c] else 255
            assert (block == expected).all()


def test_cell_centers():
    assert cell_center(0, 0) == (45, 45)
    assert cell_center(6, 6) == (285, 285)
    assert cell_center(1, 3) == (165, 85)
    points = sample_points()
    assert len(points) == 49
    assert points[8] == (1, 1, 85, 85)


def test_raster_round_trip(hello_grid, hello_raster):
    assert raster_to_grid(hello_raster) == hello_grid
    assert decode(raster_to_grid(hello_raster)) == "HELLO"


def test_raster_to_grid_accepts_arrays(hello_grid, hello_raster):
    gray = np.asarray(hello_raster.convert("L"))
    assert raster_to_grid(gray) == hello_grid
    rgb = np.stack([gray] * 3, axis=-1)
    assert raster_to_grid(rgb) == hello_grid
    assert raster_to_grid(np.asarray(hello_raster)) == hello_grid


def test_raster_to_grid_rescales(hello_grid, hello_raster):
    big = hello_raster.convert("L").resize((660, 660), resample=Image.Resampling.NEAREST)
    assert raster_to_grid(big) == hello_grid


def test_only_pure_black_is_on(hello_raster):
    pixels = np.asarray(hello_raster.convert("L")).copy()
    pixels[pixels == 0] = 1
    grid = raster_to_grid(pixels)
    assert not any(any(row) for row in grid)


@pytest.mark.parametrize("value", [0.6, 0.001, 1.0])
def test_float_gray_is_off(value):
    grid = raster_to_grid(np.full((330, 330), value))
    assert not any(any(row) for row in grid)


def test_float_raster_decodes(hello_grid, hello_raster):
    pixels = np.asarray(hello_raster.convert("L")) / 255.0
    assert raster_to_grid(pixels) == hello_grid


@pytest.mark.parametrize("pixels", [
    np.full((330, 330), 153.0),
    np.full((330, 330), np.nan),
    np.zeros((330, 330), dtype=np.int64),
])
def test_unsupported_arrays_rejected(pixels):
    with pytest.raises(ValueError):
        raster_to_grid(pixels)


def test_raster_must_be_square():
    with pytest.raises(ValueError):
        raster_to_grid(Image.new("L", (330, 300), 255))


def test_rotated_raster_decodes(hello_raster):
    for transpose in (Image.Transpose.ROTATE_90, Image.Transpose.ROTATE_180, Image.Transpose.ROTATE_270):
        assert decode(raster_to_grid(hello_raster.transpose(transpose))) == "HELLO"


def test_empty_text_raster():
    assert decode(raster_to_grid(grid_to_raster(encode("")))) == ""


def test_draw_sample_points(hello_raster):
    overlay = draw_sample_points(hello_raster)
    assert overlay.mode == "RGB"
    assert overlay.size == (330, 330)
    for _, _, x, y in sample_points():
        assert overlay.getpixel((x, y)) == SAMPLE_MARK_COLOR


SQUARE = [(0, 0), (10, 0), (0, 10), (10, 10)]


def test_classify_square():
    corners = classify_corners(SQUARE)
    assert corners == OrderedCorners(Point(0, 0), Point(10, 0), Point(0, 10), Point(10, 10))


def test_classify_any_order():
    for perm in itertools.permutations(SQUARE):
        corners = classify_corners(list(perm))
        assert corners.tl == (0, 0)
        assert corners.tr == (10, 0)
        assert corners.bl == (0, 10)
        assert corners.br == (10, 10)


def test_classify_perspective_quad():
    quad = np.array([[[412, 88]], [[95, 120]], [[130, 402]], [[450, 380]]], dtype=np.int32)
    corners = classify_corners(quad)
    assert corners.tl == (95, 120)
    assert corners.tr == (412, 88)
    assert corners.bl == (130, 402)
    assert corners.br == (450, 380)


def test_as_array_order():
    arr = classify_corners(SQUARE[::-1]).as_array()
    assert arr.dtype == np.float32
    assert arr.tolist() == [[0, 0], [10, 0], [0, 10], [10, 10]]


def test_supplied_centroid():
    corners = classify_corners(SQUARE, centroid=(4, 6))
    assert corners.br == (10, 10)


def test_point_on_axis_is_ambiguous():
    # Diamond: every vertex lies on an axis through the centre
    with pytest.raises(AmbiguousCorners):
        classify_corners([(5, 0), (10, 5), (5, 10), (0, 5)])


def test_two_points_in_one_quadrant():
    with pytest.raises(AmbiguousCorners):
        classify_corners([(0, 0), (10, 0), (0, 10), (10, 10)], centroid=(-1, 5))


def test_wrong_point_count():
    with pytest.raises(AmbiguousCorners):
        classify_corners([(0, 0), (10, 0), (0, 10)])
