"""Main module for the blob optimizer CLI."""

import sys
import json
import logging
import argparse
from pathlib import Path

from pydantic import ValidationError

from . import __version__
from .core import (
    BlobOptimizerError,
    OptimizerConfig,
    new_compression_options,
    setup_logger,
)
from .core.factories import LoggerFactory, OptimizerFactory
from .core.observability import MetricsCollector


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser for the blob optimizer.

    Returns:
        An `argparse.ArgumentParser` with the "optimize" and "version" commands.
    """
    parser = argparse.ArgumentParser(
        prog="blob-optimizer",
        description="Blob Optimizer - re-encode uploaded images in place as JPEG",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Re-encode the images listed in an upload manifest
  blob-optimizer optimize --bucket uploads --manifest upload.json

  # Downscale to at most 1600px and use multiple threads
  blob-optimizer optimize --bucket uploads --manifest upload.json \\
                          --max-dimension 1600 --processor multithread
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    optimize_parser = subparsers.add_parser(
        "optimize", help="Optimize the images of an upload manifest"
    )
    optimize_parser.add_argument("--bucket", required=True, help="S3 bucket holding the uploads")
    optimize_parser.add_argument(
        "--manifest",
        required=True,
        help="JSON manifest: {\"blobs\": {field: [keys]}, \"values\": {field: [values]}}",
    )
    optimize_parser.add_argument("--prefix", default="", help="Key prefix for new objects")
    optimize_parser.add_argument(
        "--quality", type=int, default=75, help="JPEG quality 0-100 (default: 75)"
    )
    optimize_parser.add_argument(
        "--max-dimension",
        type=int,
        default=0,
        help="Maximum width/height in pixels, 0 keeps dimensions (default: 0)",
    )
    optimize_parser.add_argument(
        "--processor",
        default="serial",
        choices=["serial", "multithread"],
        help="Processing strategy to use (default: serial)",
    )
    optimize_parser.add_argument(
        "--max-workers", type=int, default=8, help="Threads for the multithread processor"
    )
    optimize_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers.add_parser("version", help="Show version information")

    return parser


def configure_logging(debug: bool = False) -> logging.Logger:
    """
    Route CLI, store and pipeline logs to stderr.

    stdout is reserved for the JSON result so it can be redirected to a file.

    Args:
        debug: Log at DEBUG instead of the LOG_LEVEL default

    Returns:
        The CLI logger
    """
    level = "DEBUG" if debug else None
    setup_logger("store", level=level, stream=sys.stderr)
    return setup_logger("cli", level=level, stream=sys.stderr)


def run_optimize(args: argparse.Namespace) -> int:
    """Run the optimize command and print the resulting upload as JSON."""
    logger = configure_logging(args.debug)
    try:
        config = OptimizerConfig(
            bucket=args.bucket,
            prefix=args.prefix,
            quality=args.quality,
            max_dimension=args.max_dimension,
            processor=args.processor,
            max_workers=args.max_workers,
            debug=args.debug,
        )
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        manifest = Path(args.manifest).read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot read manifest {args.manifest}: {e}")
        return 1

    options = new_compression_options(manifest)
    options.quality = config.quality
    options.max_dimension = config.max_dimension

    metrics = MetricsCollector()
    pipeline_logger = LoggerFactory.create_logger(
        "blob_optimizer",
        logging.DEBUG if config.debug else logging.INFO,
        stream=sys.stderr,
    )
    optimizer = OptimizerFactory.create_optimizer(
        logger=pipeline_logger, config=config, metrics_collector=metrics
    )
    try:
        result = optimizer.parse_blobs(options)
    except BlobOptimizerError as e:
        logger.error(f"Optimization failed: {e}", exc_info=True)
        return 1

    summary = metrics.get_summary("replace_object")
    if summary:
        logger.info(f"Outcomes: {summary['outcomes']}")
    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0


def main() -> None:
    """Entry point for the blob optimizer command line interface."""
    parser = build_parser()
    parser_args = parser.parse_args()

    if parser_args.command == "optimize":
        sys.exit(run_optimize(parser_args))
    elif parser_args.command == "version":
        print("Blob Optimizer CLI")
        print(f"Version {__version__}")
        print("Re-encodes uploaded images in place as JPEG")
        sys.exit(0)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
