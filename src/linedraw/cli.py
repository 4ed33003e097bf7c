"""
linedraw Command Line
=====================

Generate a coherent line drawing from an image file.

Usage:
    linedraw -i photo.jpg -o lines.png
    linedraw -i photo.jpg -o lines.png --tau 0.9 --ei 3 --di 1 --aa
    linedraw -i photo.jpg -o lines.png --ve --arrows

Options left unset on the command line fall back to the loaded
configuration (YAML file and LINEDRAW_* environment variables).
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from linedraw import __version__
from linedraw.config import Settings, load_config, settings as default_settings, setup_logging
from linedraw.imaging.io import ImageDecodeError, check_extension, load_luminance, save_image
from linedraw.lines.drawing import CoherentLineDrawing
from linedraw.models.options import OptionsValidationError
from linedraw.observability.progress import LoggingProgress
from linedraw.observability.visualization import draw_flow_arrows


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the linedraw command."""
    parser = argparse.ArgumentParser(
        prog="linedraw",
        description=f"Coherent Line Drawing CLI (version {__version__})",
    )
    parser.add_argument("-i", "--in", dest="source", required=True, help="Source image")
    parser.add_argument("-o", "--out", dest="destination", required=True, help="Destination image")
    parser.add_argument("--sr", dest="sigma_r", type=float, help="Surround/center sigma ratio")
    parser.add_argument("--sm", dest="sigma_m", type=float, help="Flow-DoG sigma")
    parser.add_argument("--sc", dest="sigma_c", type=float, help="Gradient-DoG center sigma")
    parser.add_argument("--rho", type=float, help="Surround subtraction weight")
    parser.add_argument("--tau", type=float, help="Binarization threshold in [0, 1]")
    parser.add_argument("-k", dest="etf_kernel_radius", type=int, help="ETF kernel radius")
    parser.add_argument("--ei", dest="etf_iterations", type=int, help="ETF refinement passes")
    parser.add_argument("--di", dest="fdog_iterations", type=int, help="FDoG reseed passes")
    parser.add_argument("--bl", dest="blur_size", type=int, help="Anti-alias blur size (odd)")
    parser.add_argument(
        "--aa", dest="anti_alias", action="store_true", default=None, help="Anti-alias the result"
    )
    parser.add_argument(
        "--ve",
        dest="visualize_flow",
        action="store_true",
        default=None,
        help="Also write a flow-field preview next to the output",
    )
    parser.add_argument(
        "--arrows", action="store_true", help="Also write an arrow plot of the flow field"
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--workers", type=int, help="Worker threads (0 = CPU count)")
    parser.add_argument("--log-level", dest="log_level", help="Log level (DEBUG, INFO, ...)")
    return parser


def _sibling(path: Path, suffix: str) -> Path:
    return path.with_name(f"{path.stem}{suffix}{path.suffix}")


def run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute a parsed command. Returns the process exit status."""
    destination = Path(args.destination)

    try:
        check_extension(destination)
        options = settings.drawing.with_overrides(
            sigma_r=args.sigma_r,
            sigma_m=args.sigma_m,
            sigma_c=args.sigma_c,
            rho=args.rho,
            tau=args.tau,
            etf_kernel_radius=args.etf_kernel_radius,
            etf_iterations=args.etf_iterations,
            fdog_iterations=args.fdog_iterations,
            blur_size=args.blur_size,
            anti_alias=args.anti_alias,
            visualize_flow=args.visualize_flow,
        )
        scheduler = settings.parallel.scheduler()
        image = load_luminance(args.source)
    except (ImageDecodeError, OptionsValidationError, ValueError) as e:
        logger.error(f"Cannot start: {e}")
        return 1

    pipeline = CoherentLineDrawing(
        options,
        scheduler=scheduler,
        progress=LoggingProgress(),
    )

    start = time.perf_counter()
    result = pipeline.generate(image)

    quality = settings.output.jpeg_quality
    try:
        save_image(destination, result.mask, jpeg_quality=quality)

        if result.flow_preview is not None:
            save_image(
                _sibling(destination, settings.output.flow_preview_suffix),
                result.flow_preview,
                jpeg_quality=quality,
            )

        if args.arrows:
            save_image(
                _sibling(destination, settings.output.arrows_suffix),
                draw_flow_arrows(result.flow, image),
                jpeg_quality=quality,
            )
    except ImageDecodeError as e:
        logger.error(f"Cannot save result: {e}")
        return 1

    logger.info(f"Done in: {time.perf_counter() - start:.2f}s")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point."""
    args = build_parser().parse_args(argv)

    settings = load_config(args.config) if args.config else default_settings.model_copy(deep=True)
    if args.log_level:
        settings.logging.level = args.log_level
    if args.workers is not None:
        settings.parallel.workers = args.workers

    setup_logging(settings)
    return run(args, settings)


if __name__ == "__main__":
    sys.exit(main())
