"""Invocation of the external imessage-exporter binary."""

import logging
from datetime import date
from typing import Type

from .commands import run_command
from .exceptions import (
    ExportConfigurationError,
    ExportDatabaseError,
    ExportError,
    ExportPermissionError,
)

EXPORT_FORMATS = ('txt', 'html')
COPY_METHODS = ('clone', 'basic', 'full', 'disabled')

DEFAULT_EXPORT_FORMAT = 'txt'
DEFAULT_COPY_METHOD = 'basic'
DEFAULT_EXPORTER_BINARY = 'imessage-exporter'

PERMISSION_MARKERS = ('full disk access', 'operation not permitted', 'permission denied')
DATABASE_MARKERS = (
    'unable to read',
    'unable to open database',
    'database is locked',
    'file is not a database',
    'no such table',
)
CONFIGURATION_MARKERS = ('invalid configuration', 'invalid value', 'unrecognized', 'unexpected argument')


def classify_export_failure(output: str) -> Type[ExportError]:
    """Map exporter output to the matching error category."""
    lowered = output.lower()
    if any(marker in lowered for marker in PERMISSION_MARKERS):
        return ExportPermissionError
    if any(marker in lowered for marker in DATABASE_MARKERS):
        return ExportDatabaseError
    if any(marker in lowered for marker in CONFIGURATION_MARKERS):
        return ExportConfigurationError
    return ExportError


class ImessageExporter:
    """Runs imessage-exporter for a half-open date range."""
    
    def __init__(self, export_format: str = DEFAULT_EXPORT_FORMAT,
                 copy_method: str = DEFAULT_COPY_METHOD,
                 binary: str = DEFAULT_EXPORTER_BINARY):
        """Initialize exporter.
        
        Args:
            export_format: One of EXPORT_FORMATS.
            copy_method: One of COPY_METHODS.
            binary: Name or path of the imessage-exporter executable.
        """
        if export_format not in EXPORT_FORMATS:
            raise ValueError(f"Invalid export format: {export_format}")
        if copy_method not in COPY_METHODS:
            raise ValueError(f"Invalid copy method: {copy_method}")
        
        self.export_format = export_format
        self.copy_method = copy_method
        self.binary = binary
        self.logger = logging.getLogger(__name__)
    
    def build_command(self, start: date, end: date, dest_dir: str):
        return [
            self.binary,
            '--format', self.export_format,
            '--copy-method', self.copy_method,
            '--export-path', dest_dir,
            '--start-date', start.strftime('%Y-%m-%d'),
            '--end-date', end.strftime('%Y-%m-%d'),
            '--no-lazy',
        ]
    
    def export(self, start: date, end: date, dest_dir: str) -> None:
        """Export messages in [start, end) into dest_dir.
        
        Raises:
            ExportError: Or one of its subclasses when the export fails.
        """
        self.logger.debug(f"Exporting messages from {start} to {end} (exclusive) to {dest_dir}")
        
        try:
            returncode, output = run_command(self.build_command(start, end, dest_dir))
        except FileNotFoundError:
            raise ExportConfigurationError(f"{self.binary} not found on PATH")
        except OSError as e:
            raise ExportError(f"could not start {self.binary}: {e}")
        
        if returncode != 0:
            self.logger.debug(f"imessage-exporter output: {output}")
            error_class = classify_export_failure(output)
            raise error_class(f"{self.binary} failed with exit status {returncode}", output)
        
        self.logger.debug("Message export completed successfully")
