"""Cancellation context passed into an archiver run."""

import threading
from contextlib import contextmanager
from typing import Optional

from .exceptions import RunInterrupted


class CancellationToken:
    """Signals an in-progress run that it should stop."""
    
    def __init__(self):
        self._event = threading.Event()
        self._shield_depth = 0
        self.reason: Optional[str] = None
    
    def cancel(self, reason: str = None) -> None:
        if not self._event.is_set():
            self.reason = reason
        self._event.set()
    
    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
    
    @property
    def shielded(self) -> bool:
        """True while code that must not be interrupted is running."""
        return self._shield_depth > 0
    
    @contextmanager
    def shield(self):
        """Mark a section (cleanup) that interrupts must let finish."""
        self._shield_depth += 1
        try:
            yield
        finally:
            self._shield_depth -= 1
    
    def raise_if_cancelled(self) -> None:
        """Raise RunInterrupted if cancel() has been called."""
        if self._event.is_set():
            raise RunInterrupted(self.reason)
