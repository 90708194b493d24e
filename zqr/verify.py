"""Scan-verify & stress test: read generated codes back under distortions."""

import time
from dataclasses import dataclass, field

from PIL import Image, ImageFilter, ImageOps

from zqr.errors import CodeError
from zqr.generator import read_code
from zqr.logging import audit, get_logger, trace
from zqr.scanner import ScanConfig, ScanResult, scan_image

log = get_logger("verify")

QUIET_ZONE = 60


@dataclass
class StressTestResult:
    """Result of a full stress test battery."""
    original: ScanResult = field(default_factory=lambda: ScanResult(success=False))
    quarter_turn_results: dict[str, ScanResult] = field(default_factory=dict)
    rotation_results: dict[str, ScanResult] = field(default_factory=dict)
    blur_results: dict[str, ScanResult] = field(default_factory=dict)
    scale_results: dict[str, ScanResult] = field(default_factory=dict)
    total_tests: int = 0
    total_passed: int = 0

    @property
    def pass_rate(self) -> float:
        return self.total_passed / self.total_tests if self.total_tests > 0 else 0.0

    def summary(self) -> str:
        lines = [
            f"Stress Test Summary: {self.total_passed}/{self.total_tests} passed ({self.pass_rate:.1%})",
            f"  Original:    {'PASS' if self.original.success else 'FAIL'} ({self.original.decode_time_ms:.1f}ms)",
        ]
        for category, results in [
            ("Quarter turn", self.quarter_turn_results),
            ("Rotation", self.rotation_results),
            ("Blur", self.blur_results),
            ("Scale", self.scale_results),
        ]:
            passed = sum(1 for r in results.values() if r.success)
            lines.append(f"  {category:12s}: {passed}/{len(results)} passed")
            for name, r in results.items():
                status = "PASS" if r.success else "FAIL"
                lines.append(f"    {name:20s}: {status} ({r.decode_time_ms:.1f}ms)")
        return "\n".join(lines)


def _check_expected(result: ScanResult, expected_data: str | None) -> ScanResult:
    if result.success and expected_data is not None and result.decoded_data != expected_data:
        result.success = False
        result.error = f"Data mismatch: got '{result.decoded_data}', expected '{expected_data}'"
    return result


@trace
def scan_raster(image: Image.Image) -> ScanResult:
    """Read an already rectified raster by sampling its cell centres directly."""
    start = time.perf_counter()
    try:
        data = read_code(image)
    except CodeError as e:
        elapsed = (time.perf_counter() - start) * 1000
        audit("scan.verified", logger=log, decoder="raster", success=False, error=str(e))
        return ScanResult(success=False, error=str(e), decode_time_ms=elapsed, decoder="raster")
    elapsed = (time.perf_counter() - start) * 1000
    audit("scan.verified", logger=log, decoder="raster", success=True, data=data)
    return ScanResult(success=True, decoded_data=data, decode_time_ms=elapsed, decoder="raster")


@trace
def scan_photo(image: Image.Image, config: ScanConfig = ScanConfig()) -> ScanResult:
    """Read an image through outline detection and rectification."""
    result = scan_image(image, config)
    audit("scan.verified", logger=log, decoder="scanner", success=result.success,
          error=result.error, data=result.decoded_data)
    return result


@trace
def add_quiet_zone(image: Image.Image, margin: int = QUIET_ZONE) -> Image.Image:
    """Pad with white so the black frame has an outline to detect."""
    return ImageOps.expand(image.convert("L"), border=margin, fill=255)


@trace
def verify(image: Image.Image, expected_data: str | None = None) -> list[ScanResult]:
    """Run both readers on an image.

    Args:
        image: Generated code, with or without a quiet zone.
        expected_data: If provided, marks result as failure if decoded data doesn't match.

    Returns:
        List of ScanResults, one per reader.
    """
    return [
        _check_expected(scan_raster(image), expected_data),
        _check_expected(scan_photo(add_quiet_zone(image)), expected_data),
    ]


@trace
def apply_quarter_turn(image: Image.Image, turns: int) -> Image.Image:
    """Rotate by a multiple of 90 degrees counter-clockwise without resampling."""
    transposes = {
        1: Image.Transpose.ROTATE_90,
        2: Image.Transpose.ROTATE_180,
        3: Image.Transpose.ROTATE_270,
    }
    turns %= 4
    return image.transpose(transposes[turns]) if turns else image.copy()


@trace
def apply_rotation(image: Image.Image, degrees: float) -> Image.Image:
    """Rotate image by degrees (with white background fill)."""
    return image.convert("L").rotate(degrees, resample=Image.Resampling.BILINEAR, expand=True, fillcolor=255)


@trace
def apply_blur(image: Image.Image, radius: float) -> Image.Image:
    """Apply Gaussian blur."""
    return image.convert("L").filter(ImageFilter.GaussianBlur(radius=radius))


@trace
def apply_scale(image: Image.Image, factor: float) -> Image.Image:
    """Resize by ``factor`` with bilinear filtering."""
    w, h = image.size
    size = (max(1, round(w * factor)), max(1, round(h * factor)))
    return image.convert("L").resize(size, resample=Image.Resampling.BILINEAR)


@trace
def stress_test(
    image: Image.Image,
    expected_data: str | None = None,
    decoder: str = "scanner",
    config: ScanConfig = ScanConfig(),
) -> StressTestResult:
    """Run a full battery of stress tests on a generated code.

    Tests:
        - Quarter turns: 90, 180, 270 degrees
        - Rotation: ±10°, ±20°, ±30° (scanner only; skipped for the raster reader)
        - Gaussian blur: radius 1, 2, 3
        - Scale: 0.5x, 1.5x, 2x
    """
    if decoder == "raster":
        def scanner(img: Image.Image) -> ScanResult:
            return scan_raster(img)
    else:
        def scanner(img: Image.Image) -> ScanResult:
            return scan_photo(add_quiet_zone(img), config)

    def _scan(img: Image.Image) -> ScanResult:
        return _check_expected(scanner(img), expected_data)

    result = StressTestResult()

    result.original = _scan(image)
    result.total_tests = 1
    result.total_passed = 1 if result.original.success else 0

    def _record(bucket: dict[str, ScanResult], name: str, img: Image.Image):
        r = _scan(img)
        bucket[name] = r
        result.total_tests += 1
        result.total_passed += 1 if r.success else 0

    for turns in (1, 2, 3):
        _record(result.quarter_turn_results, f"{turns * 90}°", apply_quarter_turn(image, turns))

    # The raster reader samples fixed cell centres and cannot undo free rotation
    if decoder != "raster":
        for degrees in (-10, 10, -20, 20, -30, 30):
            _record(result.rotation_results, f"{degrees}°", apply_rotation(image, degrees))

    for radius in (1, 2, 3):
        _record(result.blur_results, f"radius={radius}", apply_blur(image, radius))

    for factor in (0.5, 1.5, 2.0):
        _record(result.scale_results, f"x{factor}", apply_scale(image, factor))

    audit("stress.completed", logger=log,
          decoder=decoder,
          pass_rate=f"{result.pass_rate:.1%}",
          passed=result.total_passed,
          total=result.total_tests)
    return result
