"""Code generation: text -> 330x330 raster image, plus a cell-role map."""

from pathlib import Path

from PIL import Image, ImageDraw

from zqr.codec import decode, encode
from zqr.grid import CHECKSUM_CELLS, GRID_SIZE, MARKER_CELLS, SPLIT_COLUMNS, Grid, check_grid
from zqr.logging import audit, get_logger, trace
from zqr.raster import grid_to_raster, raster_to_grid

log = get_logger("generator")

SHORTLINK_PREFIX = "bit.ly/"


def strip_shortlink(text: str) -> str:
    """Keep only the key of a bit.ly link, which fits in 7 symbols."""
    index = text.find(SHORTLINK_PREFIX)
    if index >= 0:
        return text[index + len(SHORTLINK_PREFIX):]
    return text


@trace
def generate_code(text: str, strip_shortlink_prefix: bool = False) -> Image.Image:
    """Encode text and render it as a 330x330 black/white image."""
    if strip_shortlink_prefix:
        text = strip_shortlink(text)
    img = grid_to_raster(encode(text))
    audit("code.generated", logger=log, text=text[:80], image_px=f"{img.size[0]}x{img.size[1]}")
    return img


@trace
def read_code(raster) -> str:
    """Decode a rectified square raster (PIL image or array)."""
    return decode(raster_to_grid(raster))


@trace
def save_code(text: str, output_path: str | Path, strip_shortlink_prefix: bool = False) -> Path:
    """Generate a code and save it as PNG, creating parent directories."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    img = generate_code(text, strip_shortlink_prefix=strip_shortlink_prefix)
    img.save(output, format="PNG")
    audit("code.saved", logger=log, path=str(output))
    return output


@trace
def render_grid_map(grid: Grid, scale: int = 40, output_path: str | None = None) -> Image.Image:
    """Render a colour-coded view of the cell roles.

    Colors:
        - Red: orientation markers
        - Yellow: checksum bits
        - Blue: overflow bits borrowed by columns 1 and 5
        - Black/White: payload bits (actual value)
    """
    check_grid(grid)
    img = Image.new("RGB", (GRID_SIZE * scale, GRID_SIZE * scale), (255, 255, 255))
    draw = ImageDraw.Draw(img)

    markers = set(MARKER_CELLS)
    checksum = set(CHECKSUM_CELLS)
    overflow = {(GRID_SIZE - 1, c) for c in SPLIT_COLUMNS.values()}

    for r in range(GRID_SIZE):
        for c in range(GRID_SIZE):
            x0, y0 = c * scale, r * scale
            x1, y1 = x0 + scale - 1, y0 + scale - 1
            on = grid[r][c]

            if (r, c) in markers:
                color = (220, 50, 50) if on else (255, 180, 180)
            elif (r, c) in checksum:
                color = (220, 200, 50) if on else (255, 240, 180)
            elif (r, c) in overflow:
                color = (50, 50, 220) if on else (180, 180, 255)
            else:
                color = (0, 0, 0) if on else (255, 255, 255)

            draw.rectangle([x0, y0, x1, y1], fill=color)
            draw.rectangle([x0, y0, x1, y1], outline=(230, 230, 230))

    if output_path:
        img.save(output_path)
        audit("grid_map.saved", logger=log, path=output_path)
    return img
