"""Per-frame text detection for a whole scan."""

import logging
from concurrent.futures import ThreadPoolExecutor
from threading import Event
from typing import List, Optional, Sequence

from shelfscan.cancellation import check_cancelled
from shelfscan.models import NO_TEXT_DETECTED, Frame, FrameText, OcrBatch
from shelfscan.profiler import profiler
from shelfscan.vision_client import VisionClient

logger = logging.getLogger(__name__)


def _frame_text(frame: Frame, client: VisionClient) -> FrameText:
    """Detect text in one frame, mapping empty results to the absence marker."""
    profiler.start_timer("detect_text")
    try:
        text = client.detect_text(frame.image_bytes)
    finally:
        profiler.stop_timer("detect_text")

    if text is None or not str(text).strip():
        logger.warning(f"No text detected in frame {frame.index}")
        return FrameText(frame_index=frame.index, text=NO_TEXT_DETECTED)
    return FrameText(frame_index=frame.index, text=str(text))


def estimate_cost(frame_count: int, cost_per_frame: float = 0.00118) -> float:
    """Linear cost model: one billed detection call per frame."""
    return frame_count * cost_per_frame


def aggregate_text(
    frames: Sequence[Frame],
    client: VisionClient,
    cost_per_frame: float = 0.00118,
    max_workers: int = 1,
    cancel_event: Optional[Event] = None
) -> OcrBatch:
    """
    Detect text in every frame and collect it in frame order.

    Calls are sequential by default to respect the service's rate and cost
    limits; ``max_workers > 1`` runs a bounded thread pool instead. Empty
    detections become the absence marker. Any OcrServiceError raised by the
    client aborts the whole batch and no partial results are returned.

    Args:
        frames: Frames in sampling order
        client: Text detection client
        cost_per_frame: Billed cost of one detection call
        max_workers: Concurrent detection calls (default: 1)
        cancel_event: Set to abort between frames

    Returns:
        OcrBatch with one FrameText per input frame
    """
    ordered = sorted(frames, key=lambda f: f.index)
    logger.info(f"Processing {len(ordered)} frames...")

    results: List[FrameText] = []
    if max_workers <= 1 or len(ordered) <= 1:
        for position, frame in enumerate(ordered):
            check_cancelled(cancel_event, "text detection")
            results.append(_frame_text(frame, client))
            logger.info(f"Processed frame {position + 1}/{len(ordered)}")
    else:
        check_cancelled(cancel_event, "text detection")
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            # map preserves input order; the first failure propagates
            results = list(executor.map(lambda f: _frame_text(f, client), ordered))
        check_cancelled(cancel_event, "text detection")

    cost = estimate_cost(len(ordered), cost_per_frame)
    found = sum(1 for r in results if r.has_text)
    logger.info(f"OCR complete: {found}/{len(results)} frames with text (cost: £{cost:.4f})")
    return OcrBatch(frames=results, cost=cost)
