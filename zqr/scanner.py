"""Photo scanner: locate a code in a still image, rectify it and decode it.

OpenCV does the image processing (blur, edges, contours, homography); the
codec only decides which detected point is which corner and where to
sample the cells.
"""

import dataclasses
import time
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image

from zqr.codec import decode
from zqr.errors import CodeError
from zqr.logging import audit, get_logger, trace
from zqr.raster import IMAGE_SIZE, OrderedCorners, classify_corners, raster_to_grid

log = get_logger("scanner")

NO_OUTLINE = "No code outline detected"


@dataclass(frozen=True)
class ScanConfig:
    """Settings for one scan. Immutable; use :meth:`replace` to vary them."""
    mirrored: bool = False       # flip the input horizontally before detection
    bw_threshold: int = 180      # rectified pixels brighter than this become white
    canny_threshold: float = 60.0
    blur_size: int = 3
    approx_epsilon: float = 0.04  # polygon tolerance, fraction of perimeter
    output_size: int = IMAGE_SIZE

    def __post_init__(self):
        if not 0 <= self.bw_threshold <= 255:
            raise ValueError(f"bw_threshold must be in 0..255, got {self.bw_threshold}")
        if self.blur_size < 1 or self.output_size < 1:
            raise ValueError("blur_size and output_size must be positive")
        if self.canny_threshold <= 0 or self.approx_epsilon <= 0:
            raise ValueError("canny_threshold and approx_epsilon must be positive")

    def replace(self, **changes) -> "ScanConfig":
        return dataclasses.replace(self, **changes)


@dataclass
class ScanResult:
    """Outcome of scanning one image. ``error`` is set when ``success`` is False."""
    success: bool
    decoded_data: str | None = None
    error: str | None = None
    corners: OrderedCorners | None = None
    rectified: np.ndarray | None = None
    decode_time_ms: float = 0.0
    decoder: str = "scanner"


def to_gray(image) -> np.ndarray:
    """Grayscale uint8 array from a PIL image or a BGR/BGRA/gray array."""
    if isinstance(image, Image.Image):
        return np.array(image.convert("L"))
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def mirror(image: np.ndarray) -> np.ndarray:
    """Flip horizontally."""
    return cv2.flip(image, 1)


def to_black_and_white(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Pixels above ``threshold`` become white, everything else black."""
    return np.where(gray > threshold, 255, 0).astype(np.uint8)


@trace
def find_code_quad(gray: np.ndarray, config: ScanConfig = ScanConfig()) -> tuple[np.ndarray, tuple[float, float]] | None:
    """Find the largest four-sided outline in a grayscale image.

    Returns the four vertices as a (4, 2) float32 array together with the
    outline's area-weighted centroid, or None when no quadrilateral exists.
    """
    blurred = cv2.blur(gray, (config.blur_size, config.blur_size))
    edges = cv2.Canny(blurred, config.canny_threshold, config.canny_threshold * 3)
    # Close one-pixel gaps so the outline comes back as a single contour
    edges = cv2.dilate(edges, np.ones((3, 3), np.uint8))
    contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    best = None
    best_area = 0.0
    for contour in contours:
        area = cv2.contourArea(contour)
        epsilon = cv2.arcLength(contour, True) * config.approx_epsilon
        approx = cv2.approxPolyDP(contour, epsilon, True)
        if len(approx) == 4 and area > best_area:
            best, best_area = approx, area

    if best is None:
        log.debug("no quadrilateral among %d contours", len(contours))
        return None

    m = cv2.moments(best)
    if m["m00"] == 0:
        return None
    centroid = (m["m10"] / m["m00"], m["m01"] / m["m00"])
    return best.reshape(4, 2).astype(np.float32), centroid


def rectify(image: np.ndarray, corners: OrderedCorners, size: int = IMAGE_SIZE) -> np.ndarray:
    """Warp the quadrilateral onto a ``size`` x ``size`` square."""
    dst = np.array(
        [[0, 0], [size - 1, 0], [0, size - 1], [size - 1, size - 1]],
        dtype=np.float32,
    )
    matrix = cv2.getPerspectiveTransform(corners.as_array(), dst)
    return cv2.warpPerspective(image, matrix, (size, size))


@trace
def scan_image(image, config: ScanConfig = ScanConfig()) -> ScanResult:
    """Locate, rectify and decode a code in a photograph.

    Failures (no outline, ambiguous corners, bad orientation, checksum) are
    returned as an unsuccessful ScanResult so callers can simply try the
    next frame.
    """
    start = time.perf_counter()
    gray = to_gray(image)
    if config.mirrored:
        gray = mirror(gray)

    found = find_code_quad(gray, config)
    if found is None:
        elapsed = (time.perf_counter() - start) * 1000
        audit("scan.completed", logger=log, success=False, error=NO_OUTLINE, time_ms=round(elapsed, 1))
        return ScanResult(success=False, error=NO_OUTLINE, decode_time_ms=elapsed)

    quad, centroid = found
    corners = None
    rectified = None
    try:
        corners = classify_corners(quad, centroid=centroid)
        rectified = to_black_and_white(rectify(gray, corners, config.output_size), config.bw_threshold)
        text = decode(raster_to_grid(rectified))
    except CodeError as e:
        elapsed = (time.perf_counter() - start) * 1000
        audit("scan.completed", logger=log, success=False, error=str(e), time_ms=round(elapsed, 1))
        return ScanResult(
            success=False,
            error=str(e),
            corners=corners,
            rectified=rectified,
            decode_time_ms=elapsed,
        )

    elapsed = (time.perf_counter() - start) * 1000
    audit("scan.completed", logger=log, success=True, data=text, time_ms=round(elapsed, 1))
    return ScanResult(
        success=True,
        decoded_data=text,
        corners=corners,
        rectified=rectified,
        decode_time_ms=elapsed,
    )
