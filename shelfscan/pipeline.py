"""Scan orchestration: video -> frames -> OCR text -> books."""

import logging
import time
from pathlib import Path
from threading import Event
from typing import Any, Callable, Dict, Optional, Sequence

from shelfscan.cancellation import check_cancelled
from shelfscan.config import DEFAULT_SCAN_CONFIG
from shelfscan.errors import PersistenceError, ScanError
from shelfscan.evidence_extractor import build_evidence_document, extract_books
from shelfscan.extraction_client import AnthropicClient
from shelfscan.frame_sampler import VideoSource, probe_duration, render_frame, sample_frames
from shelfscan.listing_sink import ListingSink
from shelfscan.models import Book, SaveResult, ScanResult
from shelfscan.ocr_aggregator import aggregate_text
from shelfscan.profiler import profiler
from shelfscan.result_merger import merge_results
from shelfscan.vision_client import VisionClient

logger = logging.getLogger(__name__)

# Called with (stage, message) as the scan progresses
StatusCallback = Callable[[str, str], None]

STAGE_FRAMES = "frames"
STAGE_OCR = "ocr"
STAGE_EXTRACTION = "extraction"
STAGE_SAVE = "save"


def _notify(callback: Optional[StatusCallback], stage: str, message: str) -> None:
    logger.info(message)
    if callback:
        callback(stage, message)


def scan_video(
    video: VideoSource,
    vision_client: VisionClient,
    extraction_client: AnthropicClient,
    config: Optional[Dict[str, Any]] = None,
    cancel_event: Optional[Event] = None,
    status_callback: Optional[StatusCallback] = None,
    probe: bool = False,
    render=render_frame
) -> ScanResult:
    """
    Run one scan from video to merged book list.

    Stages run strictly in order and each finishes before the next starts.
    Per-frame failures are absorbed inside their stage; any other failure
    aborts the scan with a ScanError subclass. Nothing is persisted here,
    see save_books.

    Args:
        video: Path to the video file, or its raw bytes
        vision_client: Text detection client
        extraction_client: Book extraction client
        config: Scan settings (see shelfscan.config.DEFAULT_SCAN_CONFIG)
        cancel_event: Set to abort; the scan raises ScanCancelled
        status_callback: Receives (stage, message) progress updates
        probe: Read the true duration from the container when no
            known_duration is configured
        render: Frame renderer passed through to the sampler

    Returns:
        ScanResult with the merged books, OCR cost and per-stage timings
    """
    config = config or DEFAULT_SCAN_CONFIG
    timings: Dict[str, float] = {}
    scan_start = time.perf_counter()

    known_duration = config.get('known_duration')
    if known_duration is None and probe and not isinstance(video, (bytes, bytearray)):
        known_duration = probe_duration(Path(video))

    try:
        _notify(status_callback, STAGE_FRAMES, "Extracting frames from video...")
        stage_start = time.perf_counter()
        with profiler.timed("sample_frames"):
            frames = sample_frames(
                video,
                frame_count=config.get('frame_count', 20),
                known_duration=known_duration,
                estimated_duration=config.get('estimated_duration', 30.0),
                jpeg_quality=config.get('jpeg_quality', 90),
                render_timeout=config.get('render_timeout', 15.0),
                cancel_event=cancel_event,
                render=render,
            )
        timings[STAGE_FRAMES] = time.perf_counter() - stage_start
        _notify(status_callback, STAGE_FRAMES,
                f"Extracted {len(frames)} frames in {timings[STAGE_FRAMES]:.1f}s")

        check_cancelled(cancel_event, STAGE_OCR)
        _notify(status_callback, STAGE_OCR, "Reading text from frames...")
        stage_start = time.perf_counter()
        with profiler.timed("ocr"):
            ocr_batch = aggregate_text(
                frames,
                vision_client,
                cost_per_frame=config.get('cost_per_frame', 0.00118),
                max_workers=config.get('ocr_workers', 1),
                cancel_event=cancel_event,
            )
        # Frame images are no longer needed once their text is known
        del frames
        timings[STAGE_OCR] = time.perf_counter() - stage_start
        _notify(status_callback, STAGE_OCR,
                f"OCR complete in {timings[STAGE_OCR]:.1f}s (cost: £{ocr_batch.cost:.4f})")

        check_cancelled(cancel_event, STAGE_EXTRACTION)
        _notify(status_callback, STAGE_EXTRACTION, "Identifying books...")
        stage_start = time.perf_counter()
        evidence_document = build_evidence_document(ocr_batch.frames)
        with profiler.timed("extraction"):
            extraction = extract_books(
                evidence_document,
                extraction_client,
                author_repeat_threshold=config.get('author_repeat_threshold', 10),
            )
        timings[STAGE_EXTRACTION] = time.perf_counter() - stage_start

        check_cancelled(cancel_event, "merge")
        merged = merge_results(extraction.high_confidence, extraction.needs_confirmation)
    except ScanError as e:
        cause = e.__cause__ or e
        logger.error(f"Scan failed: {e} (cause: {cause!r})")
        raise

    timings["total"] = time.perf_counter() - scan_start
    _notify(
        status_callback, STAGE_EXTRACTION,
        f"Books identified: {merged.total_identified} ({merged.high_confidence_count} high confidence, "
        f"{merged.needs_confirmation_count} needs review)"
    )
    logger.info(
        f"Breakdown: Frames={timings[STAGE_FRAMES]:.1f}s, OCR={timings[STAGE_OCR]:.1f}s, "
        f"Extraction={timings[STAGE_EXTRACTION]:.1f}s, Total={timings['total']:.1f}s"
    )

    return ScanResult(
        merged=merged,
        frame_count=ocr_batch.frame_count,
        ocr_cost=ocr_batch.cost,
        timings=timings,
    )


def save_books(
    books: Sequence[Book],
    sink: ListingSink,
    owner_id: str,
    status_callback: Optional[StatusCallback] = None
) -> SaveResult:
    """
    Persist books as listings for ``owner_id``.

    On PersistenceError the caller still holds ``books`` and may retry
    without scanning again.
    """
    _notify(status_callback, STAGE_SAVE, f"Saving {len(books)} books...")
    try:
        with profiler.timed("save"):
            result = sink.save(owner_id, list(books))
    except PersistenceError as e:
        logger.error(f"Save failed: {e} (cause: {e.__cause__!r})")
        raise
    _notify(status_callback, STAGE_SAVE, f"Saved {result.saved_count} books")
    return result
