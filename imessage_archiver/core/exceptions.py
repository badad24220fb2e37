"""Exception types raised by the archiver core."""

from datetime import date
from typing import Optional


class ArchiverError(Exception):
    """Base class for all archiver errors."""


class RemoteProbeError(ArchiverError):
    """Raised when the remote archive listing cannot be retrieved."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class SyncError(ArchiverError):
    """Raised when the batch transfer to the remote host fails."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class ExportError(ArchiverError):
    """Raised when imessage-exporter fails for an unrecognized reason."""

    hint = "Check the exporter output in the debug log for details."

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output

    def __str__(self) -> str:
        return f"{super().__str__()} ({self.hint})"


class ExportPermissionError(ExportError):
    """The exporter could not read the Messages database due to permissions."""

    hint = "Grant Full Disk Access to the terminal or launch agent running the archiver."


class ExportDatabaseError(ExportError):
    """The Messages database could not be opened or read."""

    hint = "Make sure the Messages database exists and is not corrupt."


class ExportConfigurationError(ExportError):
    """The exporter rejected its arguments or could not be started."""

    hint = "Check export_format, copy_method and exporter_binary in the configuration."


class LocalFilesystemError(ArchiverError):
    """Raised when a local export directory cannot be created."""


class ClassificationError(ArchiverError):
    """Raised when an export directory cannot be listed."""


class DateProcessingError(ArchiverError):
    """Wraps a failure for one date with the stage it happened in."""

    def __init__(self, target_date: date, stage: str, cause: Exception):
        super().__init__(f"failed to process date {target_date.isoformat()} during {stage}: {cause}")
        self.target_date = target_date
        self.stage = stage
        self.cause = cause


class RunInterrupted(ArchiverError):
    """Raised when the run is cancelled by an external signal."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(f"run interrupted ({reason})" if reason else "run interrupted")
        self.reason = reason
