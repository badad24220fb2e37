"""Detection of dates missing from the remote archive."""

import logging
from datetime import date, timedelta
from typing import Callable, List, Optional

from .exceptions import RemoteProbeError
from .models import RemoteArchiveIndex, date_key


class GapAnalyzer:
    """Works out which days in the lookback window still need archiving."""
    
    def __init__(self, probe, days_to_check: int = 7,
                 today: Optional[Callable[[], date]] = None):
        """Initialize gap analyzer.
        
        Args:
            probe: Object with a ``list_remote_archive_dates()`` method.
            days_to_check: Number of days before today to check.
            today: Clock returning the local current date.
        """
        if days_to_check < 0:
            raise ValueError(f"days_to_check must not be negative: {days_to_check}")
        
        self.probe = probe
        self.days_to_check = days_to_check
        self.today = today or date.today
        self.probe_failed = False
        self.index: Optional[RemoteArchiveIndex] = None
        self.logger = logging.getLogger(__name__)
    
    def window(self) -> List[date]:
        """Return yesterday back to today minus days_to_check, most recent first."""
        today = self.today()
        return [today - timedelta(days=i) for i in range(1, self.days_to_check + 1)]
    
    def find_missing_dates(self) -> List[date]:
        """Return the dates of the window that are not archived remotely.
        
        If the remote listing fails every date in the window is returned.
        """
        self.logger.debug("Finding missing archives to process")
        candidates = self.window()
        
        try:
            self.index = self.probe.list_remote_archive_dates()
            self.probe_failed = False
        except RemoteProbeError as e:
            self.logger.warning(f"Failed to get remote archive structure: {e}")
            self.index = None
            self.probe_failed = True
            return candidates
        
        missing = []
        for candidate in candidates:
            if date_key(candidate) in self.index:
                self.logger.debug(f"Archive exists for date: {date_key(candidate)}")
            else:
                self.logger.debug(f"Missing archive for date: {date_key(candidate)}")
                missing.append(candidate)
        
        return missing
