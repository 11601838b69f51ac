"""Cancellation for a running scan.

Each scan gets its own ``threading.Event``. The caller sets it when the user
navigates away or aborts recording; the pipeline checks it between stages and
between frames and raises ScanCancelled, discarding all transient state.
"""

import threading
from typing import Optional

from shelfscan.errors import ScanCancelled


def check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    """Raise ScanCancelled if the event is set."""
    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelled(f"Scan cancelled during {stage}")
