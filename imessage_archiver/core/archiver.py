"""Main archiver run controller."""

import logging
import os
import shutil
import tempfile
import threading
from datetime import date
from typing import TYPE_CHECKING, Callable, List, Optional

from .cancellation import CancellationToken
from .classifier import EmptyExportClassifier
from .exceptions import LocalFilesystemError, RunInterrupted
from .exporter import ImessageExporter
from .gaps import GapAnalyzer
from .models import RunResult, RunState, date_key
from .processor import DateProcessor
from .remote import RemoteArchiveProbe, RemoteTarget, RsyncBatchSyncer

if TYPE_CHECKING:
    from ..config.config_manager import ConfigManager

BATCH_DIR_PREFIX = 'imessage-batch-export-'


class Archiver:
    """Coordinates gap detection, per-date export and the batch sync."""
    
    def __init__(self, probe, exporter, syncer, days_to_check: int = 7,
                 local_export_path: Optional[str] = None,
                 today: Optional[Callable[[], date]] = None,
                 token: Optional[CancellationToken] = None,
                 classifier: Optional[EmptyExportClassifier] = None):
        """Initialize archiver.
        
        Args:
            probe: Remote archive listing (``list_remote_archive_dates()``).
            exporter: Export invoker (``export(start, end, dest_dir)``).
            syncer: Batch transfer (``sync(source_dir)``).
            days_to_check: Size of the lookback window.
            local_export_path: Parent directory for the batch root. Defaults
                to the system temporary directory.
            today: Clock returning the local current date.
            token: Cancellation context checked between steps.
            classifier: Empty export classifier.
        """
        self.syncer = syncer
        self.local_export_path = local_export_path
        self.token = token or CancellationToken()
        self.gap_analyzer = GapAnalyzer(probe, days_to_check, today)
        self.processor = DateProcessor(exporter, classifier)
        self.state = RunState.IDLE
        self.state_history: List[RunState] = [RunState.IDLE]
        self.last_result: Optional[RunResult] = None
        self.batch_root: Optional[str] = None
        self._cleanup_lock = threading.Lock()
        self._cleaned_up = False
        self.logger = logging.getLogger(__name__)
    
    @classmethod
    def from_config(cls, config_manager: 'ConfigManager',
                    token: Optional[CancellationToken] = None) -> 'Archiver':
        """Build an archiver wired to ssh, rsync and imessage-exporter."""
        remote_config = config_manager.get_remote_config()
        export_config = config_manager.get_export_config()
        
        target = RemoteTarget(
            user=remote_config['remote_user'],
            host=remote_config['remote_host'],
            identity_file=remote_config['ssh_private_key_path'],
            archive_path=remote_config['remote_archive_path']
        )
        exporter = ImessageExporter(
            export_format=export_config['export_format'],
            copy_method=export_config['copy_method'],
            binary=export_config['exporter_binary']
        )
        
        return cls(
            probe=RemoteArchiveProbe(target),
            exporter=exporter,
            syncer=RsyncBatchSyncer(target),
            days_to_check=export_config['days_to_check'],
            local_export_path=export_config.get('local_export_path'),
            token=token
        )
    
    def _transition(self, state: RunState):
        self.logger.debug(f"Run state: {self.state.value} -> {state.value}")
        self.state = state
        self.state_history.append(state)
    
    def plan(self) -> List[date]:
        """Return the dates a run would process, without exporting anything."""
        return self.gap_analyzer.find_missing_dates()
    
    def run(self) -> RunResult:
        """Run one archival pass.
        
        Returns:
            RunResult describing what was exported and synced.
            
        Raises:
            DateProcessingError: If any date fails; remaining dates are skipped.
            SyncError: If the batch transfer fails.
            RunInterrupted: If the cancellation token fires.
        """
        self.logger.info("Starting iMessage archival process")
        result = RunResult()
        self.last_result = result
        self._cleaned_up = False
        self.batch_root = None
        self.state = RunState.IDLE
        self.state_history = [RunState.IDLE]
        self.processor.outcomes = result.outcomes
        
        self._transition(RunState.PROBING_GAPS)
        missing = self.gap_analyzer.find_missing_dates()
        result.missing_dates = missing
        result.probe_failed = self.gap_analyzer.probe_failed
        
        self._transition(RunState.PROCESSING_DATES)
        if not missing:
            self.logger.info("No missing archives found within the specified range")
            self._transition(RunState.CLEANING_UP)
            self._transition(RunState.DONE)
            result.state = self.state
            return result
        
        self.logger.info(f"Found {len(missing)} dates to archive: {[date_key(d) for d in missing]}")
        
        interrupted = False
        try:
            self.batch_root = self._create_batch_root()
            
            for target_date in missing:
                self.token.raise_if_cancelled()
                result.date_results.append(self.processor.process(target_date, self.batch_root))
            
            self.token.raise_if_cancelled()
            if result.retained_dates:
                self._transition(RunState.SYNCING)
                self.syncer.sync(self.batch_root)
                result.synced = True
            else:
                self.logger.info("No dates with messages to sync")
        
        except RunInterrupted as e:
            interrupted = True
            result.error_message = str(e)
            self.logger.info(f"{e}, cleaning up")
            self._transition(RunState.INTERRUPTED)
            raise
        
        except Exception as e:
            result.error_message = str(e)
            self.logger.error(f"Archiving run failed: {e}")
            raise
        
        finally:
            with self.token.shield():
                self._transition(RunState.CLEANING_UP)
                self.cleanup()
                self._transition(RunState.INTERRUPTED if interrupted else RunState.DONE)
                result.state = self.state
        
        # A signal that arrived during cleanup still ends the run as interrupted
        if self.token.cancelled:
            result.error_message = f"run interrupted ({self.token.reason})"
            self._transition(RunState.INTERRUPTED)
            result.state = self.state
            self.token.raise_if_cancelled()
        
        self.logger.info("iMessage Archiver completed successfully")
        return result
    
    def _create_batch_root(self) -> str:
        try:
            if self.local_export_path:
                os.makedirs(self.local_export_path, exist_ok=True)
            return tempfile.mkdtemp(prefix=BATCH_DIR_PREFIX, dir=self.local_export_path)
        except OSError as e:
            raise LocalFilesystemError(f"failed to create local root directory: {e}") from e
    
    def cleanup(self) -> None:
        """Remove the batch root. Runs at most once per run."""
        with self._cleanup_lock, self.token.shield():
            if self._cleaned_up:
                return
            
            if self.batch_root:
                try:
                    shutil.rmtree(self.batch_root)
                    self.logger.debug(f"Cleaned up temporary directory: {self.batch_root}")
                except FileNotFoundError:
                    self.logger.debug(f"Temporary directory already gone: {self.batch_root}")
                except OSError as e:
                    self.logger.warning(f"Failed to cleanup temporary directory {self.batch_root}: {e}")
            
            # Only marked done once removal has finished or failed for good
            self._cleaned_up = True
