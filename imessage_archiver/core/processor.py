"""Per-date export into the local batch directory."""

import logging
import os
import shutil
from datetime import date
from typing import Dict

from .classifier import EmptyExportClassifier
from .exceptions import ClassificationError, DateProcessingError, ExportError, LocalFilesystemError
from .models import DateResult, ExportOutcome, date_key, date_range


class DateProcessor:
    """Exports one date and keeps the result only if it has real content."""
    
    def __init__(self, exporter, classifier: EmptyExportClassifier = None):
        self.exporter = exporter
        self.classifier = classifier or EmptyExportClassifier()
        self.outcomes: Dict[date, ExportOutcome] = {}
        self.logger = logging.getLogger(__name__)
    
    def process(self, target_date: date, batch_root: str) -> DateResult:
        """Export target_date into batch_root/YYYY/MM/DD.
        
        Args:
            target_date: Date to export.
            batch_root: Local batch directory owning all per-date trees.
            
        Returns:
            DateResult with outcome RETAINED or DISCARDED_EMPTY.
            
        Raises:
            DateProcessingError: If directory creation, export or
                classification fails.
        """
        day = date_key(target_date)
        self.logger.info(f"Archiving messages for date: {day}")
        self.outcomes[target_date] = ExportOutcome.NOT_CREATED
        
        export_dir = os.path.join(batch_root, target_date.strftime('%Y'),
                                  target_date.strftime('%m'), target_date.strftime('%d'))
        try:
            os.makedirs(export_dir, exist_ok=True)
        except OSError as e:
            raise DateProcessingError(
                target_date, 'create directory',
                LocalFilesystemError(f"cannot create {export_dir}: {e}")
            ) from e
        
        self.outcomes[target_date] = ExportOutcome.EXPORTING
        start, end = date_range(target_date)
        try:
            self.exporter.export(start, end, export_dir)
        except ExportError as e:
            self.logger.error(f"Failed to export messages for {day}: {e}")
            raise DateProcessingError(target_date, 'export', e) from e
        
        try:
            empty = self.classifier.is_empty(export_dir)
        except ClassificationError as e:
            raise DateProcessingError(target_date, 'classify', e) from e
        
        if empty:
            self.logger.info(f"No messages found for date {day}, skipping archive")
            try:
                shutil.rmtree(export_dir)
            except OSError as e:
                self.logger.warning(f"Failed to remove empty export directory {export_dir}: {e}")
            self.outcomes[target_date] = ExportOutcome.DISCARDED_EMPTY
            return DateResult(target_date, ExportOutcome.DISCARDED_EMPTY, export_dir)
        
        self.logger.info(f"Successfully processed messages for {day} locally")
        self.outcomes[target_date] = ExportOutcome.RETAINED
        return DateResult(target_date, ExportOutcome.RETAINED, export_dir)
