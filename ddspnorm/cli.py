"""ddspnorm command-line interface."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from ddspnorm import __version__

# Global log file path for easy access
LOG_FILE: Path | None = None


def _log_dir() -> Path:
    return Path.home() / ".config" / "ddspnorm" / "logs"


def setup_logging(verbose: bool = False, log_to_file: bool = True) -> Path | None:
    """Setup logging configuration with optional file output.

    Args:
        verbose: Enable DEBUG level logging
        log_to_file: Write logs to file in addition to console

    Returns:
        Path to log file if file logging is enabled
    """
    global LOG_FILE

    level = logging.DEBUG if verbose else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(console_handler)

    log_file = None
    if log_to_file:
        log_dir = _log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"ddspnorm_{timestamp}.log"
        LOG_FILE = log_file

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Always DEBUG for file
        file_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(file_handler)

        _cleanup_old_logs(log_dir, keep=10)

    # Root at DEBUG, handlers filter
    logging.basicConfig(
        level=logging.DEBUG,
        format=log_format,
        handlers=handlers,
        force=True,
    )

    return log_file


def _cleanup_old_logs(log_dir: Path, keep: int = 10) -> None:
    """Remove old log files, keeping the most recent ones."""
    log_files = sorted(log_dir.glob("ddspnorm_*.log"), key=lambda p: p.stat().st_mtime)
    for old_log in log_files[:-keep]:
        try:
            old_log.unlink()
        except OSError as e:
            logging.getLogger(__name__).debug(f"Could not remove {old_log}: {e}")


def cmd_check(args: argparse.Namespace) -> int:
    """Run the capability check."""
    from ddspnorm.capability import DisplayMetrics, InsufficientResourcesError, check_capability
    from ddspnorm.config import DDSPNormConfig
    from ddspnorm.device import ComputeBackend

    config = DDSPNormConfig.load()
    backend = ComputeBackend(args.device or config.device)

    try:
        check_capability(backend, DisplayMetrics.probe(), config.family)
    except InsufficientResourcesError as e:
        print(f"[X] {e}")
        return 1

    print(f"[OK] Ready on {backend.name}")
    return 0


def cmd_devices(args: argparse.Namespace) -> int:
    """List available compute devices."""
    from ddspnorm.device import list_devices

    print("=== Compute Devices ===")
    for dev in list_devices():
        status = "o" if dev["available"] else "x"
        print(f"  [{status}] {dev['type'].upper()}:{dev['index']} - {dev['name']}")
    return 0


def cmd_normalize(args: argparse.Namespace) -> int:
    """Normalize a features JSON file against a model."""
    from ddspnorm.audio.features import AudioFeatures
    from ddspnorm.config import DDSPNormConfig, ModelValues
    from ddspnorm.device import ComputeBackend
    from ddspnorm.pipeline.chunked import normalize_recording
    from ddspnorm.pipeline.normalize import FeatureNormalizer

    config = DDSPNormConfig.load()
    logger = logging.getLogger(__name__)

    model_path = Path(args.model)
    if not model_path.exists():
        # Allow bare model names from the models directory
        model_path = config.get_models_dir() / f"{args.model}.json"

    print(f"Loading features: {args.input}")
    features = AudioFeatures.load(Path(args.input))
    print(f"Loading model: {model_path}")
    model = ModelValues.load(model_path)

    backend = ComputeBackend(args.device or config.device)
    normalizer = FeatureNormalizer(backend=backend, constants=config.family)
    chunk_seconds = args.chunk_sec if args.chunk_sec is not None else config.chunk_seconds

    logger.info(f"Normalizing {features.num_frames} frames for model '{model.name}' on {backend.name}")
    output = normalize_recording(features, model, chunk_seconds=chunk_seconds, normalizer=normalizer)

    output_path = Path(args.output) if args.output else Path(args.input).with_name(
        f"{Path(args.input).stem}_normalized.json"
    )
    output.save(output_path)
    print(f"Saving: {output_path}")

    config.last_model_path = str(model_path)
    config.save()

    print("Done!")
    return 0


def cmd_frames(args: argparse.Namespace) -> int:
    """Convert between seconds and model frames."""
    from ddspnorm.audio.frames import frames_to_seconds, seconds_to_frames
    from ddspnorm.config import DDSPNormConfig

    frame_rate = DDSPNormConfig.load().family.model_frame_rate
    if args.to_seconds:
        print(f"{frames_to_seconds(args.value, frame_rate):g}")
    else:
        print(f"{seconds_to_frames(args.value, frame_rate):g}")
    return 0


def cmd_logs(args: argparse.Namespace) -> int:
    """Show log files."""
    log_dir = _log_dir()

    if not log_dir.exists():
        print("No log files found.")
        return 0

    log_files = sorted(log_dir.glob("ddspnorm_*.log"), key=lambda p: p.stat().st_mtime, reverse=True)

    if not log_files:
        print("No log files found.")
        return 0

    if args.tail:
        latest = log_files[0]
        print(f"=== {latest.name} (last {args.tail} lines) ===\n")
        with open(latest, "r", encoding="utf-8") as f:
            lines = f.readlines()
            for line in lines[-args.tail:]:
                print(line, end="")
        return 0

    print(f"Log directory: {log_dir}\n")
    print("Recent log files:")
    for log_file in log_files[:10]:
        size = log_file.stat().st_size
        mtime = datetime.fromtimestamp(log_file.stat().st_mtime).strftime("%Y-%m-%d %H:%M:%S")
        print(f"  {log_file.name}  ({size:,} bytes, {mtime})")

    print(f"\nUse 'ddspnorm logs --tail 50' to show last 50 lines")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ddspnorm",
        description="ddspnorm - align pitch/loudness features to a DDSP model",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"ddspnorm {__version__}",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to console only",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    device_choices = ["auto", "xpu", "cuda", "mps", "cpu"]

    # Check command
    check_parser = subparsers.add_parser("check", help="Check memory and GPU backend")
    check_parser.add_argument(
        "--device",
        choices=device_choices,
        help="Compute device (default: from config)",
    )
    check_parser.set_defaults(func=cmd_check)

    # Devices command
    devices_parser = subparsers.add_parser("devices", help="List available compute devices")
    devices_parser.set_defaults(func=cmd_devices)

    # Normalize command
    normalize_parser = subparsers.add_parser("normalize", help="Normalize a features JSON file")
    normalize_parser.add_argument("input", help="Input features JSON (loudness_db, f0_hz, confidences)")
    normalize_parser.add_argument(
        "--model", "-m",
        required=True,
        help="Model description JSON, or a model name in the models directory",
    )
    normalize_parser.add_argument(
        "--output", "-o",
        help="Output features JSON",
    )
    normalize_parser.add_argument(
        "--chunk-sec",
        type=float,
        help="Chunk duration in seconds (default: whole recording)",
    )
    normalize_parser.add_argument(
        "--device",
        choices=device_choices,
        help="Compute device (default: from config)",
    )
    normalize_parser.set_defaults(func=cmd_normalize)

    # Frames command
    frames_parser = subparsers.add_parser("frames", help="Convert seconds to model frames")
    frames_parser.add_argument("value", type=float, help="Seconds (or frames with --to-seconds)")
    frames_parser.add_argument(
        "--to-seconds",
        action="store_true",
        help="Convert frames to seconds instead",
    )
    frames_parser.set_defaults(func=cmd_frames)

    # Logs command
    logs_parser = subparsers.add_parser("logs", help="View log files")
    logs_parser.add_argument(
        "--tail", "-t",
        type=int,
        metavar="N",
        help="Show last N lines of the latest log",
    )
    logs_parser.set_defaults(func=cmd_logs)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, log_to_file=not args.no_log_file)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except Exception as e:
        logging.error(f"Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
