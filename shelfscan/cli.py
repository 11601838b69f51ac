#!/usr/bin/env python3
"""Command-line harness for scanning a bookshelf video."""

import argparse
import json
import logging
import sys
from pathlib import Path

from rich.console import Console

from shelfscan.config import build_scan_config, get_env
from shelfscan.display import ScanProgressDisplay, show_results
from shelfscan.errors import PersistenceError, ScanError
from shelfscan.extraction_client import AnthropicClient
from shelfscan.listing_sink import InMemoryListingSink, SupabaseListingSink
from shelfscan.pipeline import save_books, scan_video
from shelfscan.profiler import profiler
from shelfscan.session import ScanSession
from shelfscan.vision_client import VisionClient

logger = logging.getLogger(__name__)


def _suppress_logging():
    """Suppress logging output that interferes with rich display."""
    null_handler = logging.NullHandler()
    package_logger = logging.getLogger('shelfscan')
    package_logger.setLevel(logging.CRITICAL)
    package_logger.handlers = [null_handler]
    package_logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Identify the books in a video pan across a bookshelf",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan a recording and show the identified books:
  shelfscan --video ~/shelf.mp4

  # Use the true video length for frame spacing and save the results:
  shelfscan --video ~/shelf.mp4 --probe --save --owner-id 24e38981-b0ab-4209-977e-acecd6f647ed

  # Machine-readable output:
  shelfscan --video ~/shelf.webm --json
        """
    )

    parser.add_argument("--video", type=str, required=True, help="Path to the bookshelf video (required)")

    # Sampling
    parser.add_argument("--frames", type=int, default=None, help="Number of frames to sample (default: 20)")
    parser.add_argument("--duration", type=float, default=None, help="Known video duration in seconds")
    parser.add_argument("--estimated-duration", type=float, default=None,
                        help="Duration assumed when none is known (default: 30)")
    parser.add_argument("--probe", action="store_true", help="Read the video duration with ffprobe")

    # Services
    parser.add_argument("--vision-key", type=str, default=None, help="Google Cloud Vision API key")
    parser.add_argument("--anthropic-key", type=str, default=None, help="Anthropic API key")
    parser.add_argument("--model", type=str, default=None, help="Extraction model")
    parser.add_argument("--ocr-workers", type=int, default=None,
                        help="Concurrent text detection calls (default: 1)")
    parser.add_argument("--author-threshold", type=int, default=None,
                        help="Author mentions that trigger a search for several titles (default: 10)")

    # Saving
    parser.add_argument("--save", action="store_true", help="Save identified books as listings")
    parser.add_argument("--dry-run", action="store_true", help="Save to memory instead of Supabase")
    parser.add_argument("--owner-id", type=str, default=None, help="Owner of saved listings")

    # Output
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--profile", type=str, default=None, help="Enable profiling and write to specified JSON file")
    parser.add_argument("--verbose", action="store_true", help="Log to stderr instead of showing live progress")
    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    console = Console(stderr=True)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')
    else:
        _suppress_logging()

    if args.profile:
        profiler.enable(args.profile)

    try:
        config = build_scan_config(
            frame_count=args.frames,
            known_duration=args.duration,
            estimated_duration=args.estimated_duration,
            ocr_workers=args.ocr_workers,
            author_repeat_threshold=args.author_threshold,
            extraction_model=args.model,
        )
        video_path = Path(args.video).expanduser()
        if not video_path.exists():
            raise ValueError(f"Video file not found: {video_path}")

        owner_id = get_env('SHELFSCAN_OWNER_ID', args.owner_id)
        if args.save and not owner_id:
            raise ValueError("--owner-id (or SHELFSCAN_OWNER_ID) is required with --save")

        vision_client = VisionClient(api_key=args.vision_key, timeout=config['ocr_timeout'])
        extraction_client = AnthropicClient(
            api_key=args.anthropic_key,
            model=config['extraction_model'],
            max_tokens=config['extraction_max_tokens'],
            timeout=config['extraction_timeout'],
        )
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    session = ScanSession()
    session.begin_processing()

    display = None
    if not args.verbose and not args.json:
        display = ScanProgressDisplay(console=console)
        display.start()

    try:
        result = scan_video(
            video_path,
            vision_client,
            extraction_client,
            config=config,
            cancel_event=session.cancel_event,
            status_callback=display.update if display else None,
            probe=args.probe,
        )
        session.complete(result)
    except ScanError as e:
        session.fail(e)
        console.print(f"[red]{session.error_message}.[/red] Please scan again.")
        return 1
    except RuntimeError as e:
        session.fail(e)
        console.print(f"[red]Error:[/red] {e}")
        return 1
    except KeyboardInterrupt:
        session.cancel()
        console.print("[yellow]Scan cancelled[/yellow]")
        return 130
    finally:
        if display:
            display.finish()
            display.stop()
        if args.profile:
            profiler.save_results()

    if args.json:
        print(json.dumps(dict(
            result.merged.to_dict(), frame_count=result.frame_count, ocr_cost=result.ocr_cost
        ), indent=2))
    else:
        show_results(result.merged, timings=result.timings, ocr_cost=result.ocr_cost)

    if args.save:
        try:
            sink = InMemoryListingSink() if args.dry_run else SupabaseListingSink(timeout=config['save_timeout'])
            saved = save_books(result.books, sink, owner_id)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            return 1
        except PersistenceError as e:
            console.print(f"[red]{e.user_message}.[/red] Your scan results are kept above, try saving again.")
            return 1
        console.print(f"[green]✓[/green] Saved {saved.saved_count} books")

    return 0


if __name__ == "__main__":
    sys.exit(main())
