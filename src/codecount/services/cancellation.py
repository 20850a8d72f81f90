"""
Cooperative cancellation for long-running scans.
"""

import threading


class CancellationToken:
    """
    Flag checked by the scan orchestrator between batches.

    Cancelling never interrupts work in flight: the current batch finishes
    and the scan returns a partial result marked ``cancelled``.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()
