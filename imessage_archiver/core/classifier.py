"""Detection of exports that contain only imessage-exporter's no-data artifacts."""

import logging
import os

from .exceptions import ClassificationError

ATTACHMENTS_DIR = 'attachments'
ORPHANED_FILE = 'orphaned.html'
ORPHANED_SIZE_LIMIT = 10240


class EmptyExportClassifier:
    """Decides whether an export directory holds real content.
    
    When a day has no messages the exporter still writes an empty
    ``attachments`` directory and a small ``orphaned.html``. Anything
    else, or either artifact in an unexpected shape, means real content.
    """
    
    def __init__(self, orphaned_size_limit: int = ORPHANED_SIZE_LIMIT):
        self.orphaned_size_limit = orphaned_size_limit
        self.logger = logging.getLogger(__name__)
    
    def is_empty(self, directory: str) -> bool:
        """Return True if directory holds nothing but empty-export artifacts.
        
        Raises:
            ClassificationError: If directory cannot be listed.
        """
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            raise ClassificationError(f"cannot list export directory {directory}: {e}") from e
        
        if not entries:
            return True
        
        artifacts = 0
        for entry in entries:
            if entry.name == ATTACHMENTS_DIR:
                if not self._is_empty_attachments(entry):
                    return False
            elif entry.name == ORPHANED_FILE:
                if not self._is_small_orphaned(entry):
                    return False
            else:
                return False
            artifacts += 1
        
        self.logger.debug(f"{directory} contains only empty export artifacts ({artifacts})")
        return artifacts > 0
    
    def _is_empty_attachments(self, entry: os.DirEntry) -> bool:
        if not entry.is_dir(follow_symlinks=False):
            return False
        try:
            with os.scandir(entry.path) as it:
                return next(it, None) is None
        except OSError as e:
            self.logger.debug(f"Error reading attachments directory: {e}")
            return False
    
    def _is_small_orphaned(self, entry: os.DirEntry) -> bool:
        if not entry.is_file(follow_symlinks=False):
            return False
        try:
            size = entry.stat(follow_symlinks=False).st_size
        except OSError as e:
            self.logger.debug(f"Error stating {ORPHANED_FILE}: {e}")
            return False
        return size <= self.orphaned_size_limit
