"""Exception hierarchy for the scan and save stages.

Soft errors (FrameRenderError) are absorbed inside their stage. Hard errors
abort their stage and carry a short ``user_message``; the underlying cause is
chained and only ever logged for operators.
"""


class ShelfScanError(Exception):
    """Base class for all shelfscan errors."""

    user_message = "Something went wrong"


class FrameRenderError(ShelfScanError):
    """A single frame could not be rendered from the video."""

    def __init__(self, index: int, timestamp: float, reason: str):
        super().__init__(f"Failed to render frame {index} at {timestamp:.2f}s: {reason}")
        self.index = index
        self.timestamp = timestamp


class ScanError(ShelfScanError):
    """A hard failure in one of the scan stages."""

    user_message = "Scan failed"


class OcrServiceError(ScanError):
    user_message = "OCR failed"


class ExtractionServiceError(ScanError):
    user_message = "Book analysis failed"


class ExtractionFormatError(ScanError):
    """The extraction response did not match the expected JSON structure."""

    user_message = "Book analysis failed"

    def __init__(self, message: str, raw_response: str = ""):
        super().__init__(message)
        # Kept for diagnosis; never surfaced to end users
        self.raw_response = raw_response


class ScanCancelled(ScanError):
    user_message = "Scan cancelled"


class PersistenceError(ShelfScanError):
    user_message = "Save failed"


class InvalidMergeInput(ShelfScanError, ValueError):
    """A bucket passed to the merger holds entries of the wrong type."""
