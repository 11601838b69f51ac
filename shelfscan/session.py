"""
Caller-side scan state.

The capture flow is a small state machine owned by whatever drives the
pipeline (a UI screen, the CLI):

    idle -> recording -> processing -> results | error

Uploaded files skip recording (idle -> processing). Any state can go back to
idle with reset(), which also drops the previous scan's results.
"""

import threading
from enum import Enum
from typing import Dict, FrozenSet, Optional

from shelfscan.errors import ShelfScanError
from shelfscan.models import ScanResult


class ScanState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    RESULTS = "results"
    ERROR = "error"


TRANSITIONS: Dict[ScanState, FrozenSet[ScanState]] = {
    ScanState.IDLE: frozenset({ScanState.RECORDING, ScanState.PROCESSING}),
    ScanState.RECORDING: frozenset({ScanState.PROCESSING, ScanState.IDLE}),
    ScanState.PROCESSING: frozenset({ScanState.RESULTS, ScanState.ERROR}),
    ScanState.RESULTS: frozenset(),
    ScanState.ERROR: frozenset(),
}


class InvalidTransition(ShelfScanError, ValueError):
    pass


class ScanSession:
    """Tracks one user's capture flow and owns the cancel flag for its scan."""

    def __init__(self):
        self.state = ScanState.IDLE
        self.result: Optional[ScanResult] = None
        self.error_message: Optional[str] = None
        self.cancel_event = threading.Event()

    def _move(self, target: ScanState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"Cannot go from {self.state.value} to {target.value}")
        self.state = target

    def start_recording(self) -> None:
        self._move(ScanState.RECORDING)

    def stop_recording(self) -> None:
        """Recording finished; the video is handed to the pipeline."""
        self._move(ScanState.PROCESSING)

    def abort_recording(self) -> None:
        self._move(ScanState.IDLE)

    def begin_processing(self) -> None:
        """Start processing an uploaded video without a recording step."""
        self._move(ScanState.PROCESSING)

    def complete(self, result: ScanResult) -> None:
        self._move(ScanState.RESULTS)
        self.result = result

    def fail(self, error: Exception) -> None:
        self._move(ScanState.ERROR)
        # Only the short message is kept for display; the cause goes to the logs
        self.error_message = getattr(error, 'user_message', "Something went wrong")

    def cancel(self) -> None:
        """Ask a running scan to stop. The scan then fails with ScanCancelled."""
        self.cancel_event.set()

    def reset(self) -> None:
        self.cancel_event.set()
        self.state = ScanState.IDLE
        self.result = None
        self.error_message = None
        self.cancel_event = threading.Event()
