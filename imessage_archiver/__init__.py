"""
iMessage Archiver - archive daily iMessage exports to a remote backup host.

Finds the days missing from the remote archive, exports them with
imessage-exporter and pushes the non-empty ones with a single rsync.
"""

__version__ = "1.0.0"

from .core.archiver import Archiver
from .core.classifier import EmptyExportClassifier
from .core.gaps import GapAnalyzer

__all__ = ["Archiver", "EmptyExportClassifier", "GapAnalyzer"]
