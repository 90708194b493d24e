"""ZQR CLI: generate, read and scan 7x7 codes from the command line."""

import argparse
import sys
from pathlib import Path

import cv2
from PIL import Image

from zqr.errors import CodeError
from zqr.logging import audit, get_logger, setup_logging

log = get_logger("cli")


def cmd_generate(args):
    """Generate a code image."""
    from zqr.codec import encode
    from zqr.generator import render_grid_map, save_code, strip_shortlink

    output = save_code(args.text, args.output, strip_shortlink_prefix=args.shortlink)
    print(f"Generated: {output}")

    if args.map:
        text = strip_shortlink(args.text) if args.shortlink else args.text
        map_path = Path(args.map)
        map_path.parent.mkdir(parents=True, exist_ok=True)
        render_grid_map(encode(text), output_path=str(map_path))
        print(f"Cell map:  {map_path}")


def cmd_decode(args):
    """Decode a rectified code image."""
    from zqr.generator import read_code
    from zqr.raster import draw_sample_points

    img = Image.open(args.image)
    if args.overlay:
        draw_sample_points(img).save(args.overlay)
        print(f"Sample overlay: {args.overlay}")

    try:
        text = read_code(img)
    except (CodeError, ValueError) as e:
        print(f"FAIL | {e}")
        sys.exit(1)
    print(text)


def cmd_scan(args):
    """Find, rectify and decode a code in a photograph."""
    from zqr.scanner import ScanConfig, scan_image

    image = cv2.imread(args.image, cv2.IMREAD_COLOR)
    if image is None:
        print(f"Cannot read image: {args.image}")
        sys.exit(2)

    config = ScanConfig(
        mirrored=args.mirrored,
        bw_threshold=args.threshold,
        canny_threshold=args.canny,
    )
    result = scan_image(image, config)

    if args.save_rectified and result.rectified is not None:
        cv2.imwrite(args.save_rectified, result.rectified)
        print(f"Rectified: {args.save_rectified}")

    if not result.success:
        print(f"FAIL | {result.decode_time_ms:.1f}ms | {result.error}")
        sys.exit(1)
    print(f"PASS | {result.decode_time_ms:.1f}ms | {result.decoded_data}")


def cmd_dump(args):
    """Print the cell grid for a text."""
    from zqr.codec import encode
    from zqr.grid import format_grid

    print(format_grid(encode(args.text)))


def cmd_verify(args):
    """Verify a generated code image with both readers."""
    from zqr.verify import verify

    img = Image.open(args.image)
    results = verify(img, expected_data=args.expected)

    all_pass = True
    for r in results:
        status = "PASS" if r.success else "FAIL"
        if not r.success:
            all_pass = False
        print(f"  [{r.decoder:8s}] {status} | {r.decode_time_ms:6.1f}ms | {r.decoded_data or r.error}")

    sys.exit(0 if all_pass else 1)


def cmd_stress(args):
    """Run stress tests on a generated code image."""
    from zqr.verify import stress_test

    img = Image.open(args.image)
    result = stress_test(img, expected_data=args.expected, decoder=args.decoder)
    print(result.summary())
    sys.exit(0 if result.pass_rate >= 0.8 else 1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zqr", description="ZQR: 7x7 visual code generator and reader")

    # Global logging flags
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")
    parser.add_argument("--json", action="store_true", help="JSON log lines on the console")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- generate ---
    p_gen = subparsers.add_parser("generate", help="Generate a code image")
    p_gen.add_argument("text", help="Up to 7 symbols to encode")
    p_gen.add_argument("-o", "--output", default="output/code.png", help="Output file path")
    p_gen.add_argument("--shortlink", action="store_true", help="Encode only the key after 'bit.ly/'")
    p_gen.add_argument("--map", default=None, help="Also save a colour-coded cell map here")

    # --- decode ---
    p_dec = subparsers.add_parser("decode", help="Decode a rectified code image")
    p_dec.add_argument("image", help="Path to square code image")
    p_dec.add_argument("--overlay", default=None, help="Save the image with sample points marked")

    # --- scan ---
    p_scan = subparsers.add_parser("scan", help="Find and decode a code in a photo")
    p_scan.add_argument("image", help="Path to photo")
    p_scan.add_argument("--mirrored", action="store_true", help="Input is mirrored (selfie camera)")
    p_scan.add_argument("--threshold", type=int, default=180, help="Black/white threshold 0-255")
    p_scan.add_argument("--canny", type=float, default=60.0, help="Lower Canny edge threshold")
    p_scan.add_argument("--save-rectified", default=None, help="Save the rectified black/white code")

    # --- dump ---
    p_dump = subparsers.add_parser("dump", help="Print the cell grid for a text")
    p_dump.add_argument("text", help="Up to 7 symbols to encode")

    # --- verify ---
    p_ver = subparsers.add_parser("verify", help="Verify a code image")
    p_ver.add_argument("image", help="Path to code image")
    p_ver.add_argument("--expected", default=None, help="Expected decoded data (fails if mismatch)")

    # --- stress ---
    p_stress = subparsers.add_parser("stress", help="Run stress tests on a code image")
    p_stress.add_argument("image", help="Path to code image")
    p_stress.add_argument("--expected", default=None, help="Expected decoded data")
    p_stress.add_argument("--decoder", default="scanner", choices=["scanner", "raster"], help="Reader to use")

    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging before any command runs
    level = "DEBUG" if args.verbose else "WARNING"
    setup_logging(level=level, log_file=args.log_file, json_format=args.json)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "generate": cmd_generate,
        "decode": cmd_decode,
        "scan": cmd_scan,
        "dump": cmd_dump,
        "verify": cmd_verify,
        "stress": cmd_stress,
    }
    commands[args.command](args)
    audit("cli.done", logger=log, command=args.command)


if __name__ == "__main__":
    main()
