"""Command-line entry point.

    fogcheck check                      check all locations, update the API files
    fogcheck cleanup                    drop history buckets older than 2 years
    fogcheck setup --location berkeley --url https://.../cam.jpg \\
        --landmark sf-skyline:300,200,150,100:0.7
    fogcheck setup --location salesforce-north --type hls --url https://.../master.m3u8 \\
        --snapshot snapshots/salesforce-north.png --landmark gg-bridge:400,260,80,160
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from fogcheck.check import run_check, run_cleanup
from fogcheck.config import Settings
from fogcheck.models import ImageSource
from fogcheck.templates import TemplateSetup, create_template_with_coordinates

logger = logging.getLogger(__name__)


def parse_landmark(spec: str) -> TemplateSetup:
    """Parse ``name:x,y,width,height[:threshold]``."""
    parts = spec.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(
            f"expected name:x,y,width,height[:threshold], got {spec!r}"
        )
    try:
        x, y, width, height = (int(v) for v in parts[1].split(","))
        threshold = float(parts[2]) if len(parts) == 3 else None
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid landmark {spec!r}: {e}") from e
    return TemplateSetup(
        name=parts[0], x=x, y=y, width=width, height=height, threshold=threshold
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fogcheck", description="Webcam fog detection and history archive"
    )
    parser.add_argument(
        "--root", type=Path, help="Project root (default: $FOGCHECK_ROOT or cwd)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("check", help="Check fog at all configured locations")
    sub.add_parser("cleanup", help="Delete history older than 2 years")

    setup = sub.add_parser("setup", help="Create templates from a clear-day image")
    setup.add_argument("--location", required=True, help="Location name")
    setup.add_argument("--url", required=True, help="Image URL or HLS playlist")
    setup.add_argument("--type", choices=("image", "hls"), default="image")
    setup.add_argument("--region", help="Region key (default: location name)")
    setup.add_argument(
        "--snapshot",
        type=Path,
        help="Cut templates from this saved clear-day frame instead of fetching --url",
    )
    setup.add_argument(
        "--landmark",
        dest="landmarks",
        type=parse_landmark,
        action="append",
        required=True,
        help="name:x,y,width,height[:threshold]; repeatable",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    settings = Settings.from_env(args.root)

    try:
        if args.command == "check":
            report = run_check(settings)
            if report.failed:
                logger.warning("Failed locations: %s", ", ".join(report.failed))
        elif args.command == "cleanup":
            report = run_cleanup(settings)
            logger.info(
                "Deleted %d file(s), kept %d", len(report.deleted), report.kept
            )
        else:
            create_template_with_coordinates(
                ImageSource(type=args.type, url=args.url),
                args.location,
                args.landmarks,
                settings,
                region=args.region,
                snapshot=args.snapshot,
            )
    except Exception:
        logger.exception("Fatal error")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
