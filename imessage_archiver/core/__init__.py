"""Core archiving functionality."""

from .archiver import Archiver
from .cancellation import CancellationToken
from .classifier import EmptyExportClassifier
from .exporter import ImessageExporter
from .gaps import GapAnalyzer
from .models import DateResult, ExportOutcome, RemoteArchiveIndex, RunResult, RunState
from .processor import DateProcessor
from .remote import RemoteArchiveProbe, RemoteTarget, RsyncBatchSyncer

__all__ = [
    "Archiver", "CancellationToken", "EmptyExportClassifier", "ImessageExporter",
    "GapAnalyzer", "DateResult", "ExportOutcome", "RemoteArchiveIndex", "RunResult",
    "RunState", "DateProcessor", "RemoteArchiveProbe", "RemoteTarget", "RsyncBatchSyncer",
]
