"""
Command-line interface for the body pose detection pipeline.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

from rich.console import Console

from bodypose_app import __version__
from bodypose_app.capture.source import CameraFrameSource
from bodypose_app.config import AppConfig
from bodypose_app.models.pose_engine import create_engine
from bodypose_app.pipeline.detection import DetectionPipeline, PipelineState
from bodypose_app.pipeline.publisher import DetectionPublisher
from bodypose_app.types import DetectionResult, Failure
from bodypose_app.vision.landmarks import LandmarkExtractor

console = Console()

DEFAULT_CONFIG_PATH = Path("config.yaml")


def setup_logging(verbose: bool = False):
    """Configure logging for the application."""
    formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(console_handler)

    logging.getLogger('bodypose_app').setLevel(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger('bodypose_app.pipeline').setLevel(logging.DEBUG if verbose else logging.INFO)


def parse_size(value: str) -> Tuple[int, int]:
    """Parse a WIDTHxHEIGHT string."""
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got {value!r}")
    return width, height


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Real-time body pose detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Detect from the default webcam
  bodypose --camera 0

  # Detect from a video file for 10 seconds, mapping into a 390x844 view
  bodypose --video input.mp4 --view-size 390x844 --duration 10

  # Use custom configuration
  bodypose --config custom_config.yaml
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--camera", type=int, metavar="INDEX", help="Camera index")
    source.add_argument("--video", type=Path, help="Input video file")

    parser.add_argument("--config", type=Path, help="Configuration file (YAML)")
    parser.add_argument("--view-size", type=parse_size, metavar="WxH", help="Destination view size")
    parser.add_argument("--threshold", type=float, help="Joint confidence threshold")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds")
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Keep processing frames after a failed inference call",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    return parser


def load_config(args: argparse.Namespace) -> AppConfig:
    """Build the configuration from file and command-line overrides."""
    config_path: Optional[Path] = args.config
    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH

    if config_path is not None:
        console.print(f"[cyan]Loading configuration from:[/cyan] {config_path}")
        config = AppConfig.from_yaml(config_path)
    else:
        config = AppConfig()

    if args.camera is not None:
        config.capture.device_index = args.camera
        config.capture.video_path = None
    if args.video is not None:
        config.capture.video_path = args.video
    if args.view_size is not None:
        config.view.width, config.view.height = args.view_size
    if args.threshold is not None:
        config.detection.confidence_threshold = args.threshold
    if args.continue_on_error:
        config.detection.halt_on_inference_error = False

    return config


def build_pipeline(config: AppConfig, publisher: DetectionPublisher) -> DetectionPipeline:
    """Create the source, engine and pipeline described by `config`."""
    source = CameraFrameSource(config.capture)
    engine = create_engine(
        config.engine.backend,
        model_complexity=config.engine.model_complexity,
        min_detection_confidence=config.engine.min_detection_confidence,
        min_tracking_confidence=config.engine.min_tracking_confidence,
    )
    return DetectionPipeline(
        source=source,
        engine=engine,
        view_size=(config.view.width, config.view.height),
        publisher=publisher,
        extractor=LandmarkExtractor(config.detection.confidence_threshold),
        halt_on_inference_error=config.detection.halt_on_inference_error,
    )


def print_result(result: DetectionResult) -> None:
    if isinstance(result, Failure):
        console.print(f"[red]✗ {result}[/red]")
        return
    if not len(result):
        console.print("[dim]no joints[/dim]")
        return
    coords = " ".join(f"({x:.0f},{y:.0f})" for x, y in result.to_list())
    console.print(f"[green]{len(result):2d} joints[/green] {coords}")


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    config = load_config(args)

    issues = config.validate()
    if issues:
        console.print("[yellow]Configuration warnings:[/yellow]")
        for issue in issues:
            console.print(f"  - {issue}")

    publisher = DetectionPublisher()
    publisher.subscribe(print_result)

    try:
        pipeline = build_pipeline(config, publisher)
    except Exception as e:
        console.print(f"[red]Error initializing pipeline:[/red] {e}")
        return 1

    if not pipeline.prepare():
        console.print("[red]Pipeline could not be started[/red]")
        pipeline.teardown()
        return 1

    console.print("[bold green]Detecting... press Ctrl+C to stop[/bold green]")
    started = time.monotonic()
    try:
        while pipeline.state is PipelineState.RUNNING and pipeline.source.is_running:
            if args.duration is not None and time.monotonic() - started >= args.duration:
                break
            time.sleep(0.1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
    finally:
        final_state = pipeline.state
        pipeline.teardown()

    stats = pipeline.stats
    console.print(f"\n[bold green]✓ Done[/bold green] ({final_state.value})")
    console.print(f"  Frames received: {stats.received}")
    console.print(f"  Frames dispatched: {stats.dispatched}")
    console.print(f"  Frames dropped: {stats.dropped}")
    console.print(f"  Results published: {stats.published}")
    console.print(f"  Failures: {stats.failures}")

    return 0 if stats.failures == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
