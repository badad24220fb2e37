"""Remote archive listing and batch transfer over SSH and rsync."""

import logging
import shlex
from dataclasses import dataclass
from typing import List

from .commands import run_command
from .exceptions import RemoteProbeError, SyncError
from .models import RemoteArchiveIndex

SSH_CONNECT_TIMEOUT = 30
SSH_SERVER_ALIVE_INTERVAL = 60
SSH_SERVER_ALIVE_COUNT_MAX = 3
RSYNC_TIMEOUT = 300

DATE_DIR_PATTERN = '*/[0-9][0-9][0-9][0-9]/[0-9][0-9]/[0-9][0-9]'


@dataclass
class RemoteTarget:
    """Connection details for the remote archive host."""
    user: str
    host: str
    identity_file: str
    archive_path: str

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.host}"

    def ssh_options(self) -> List[str]:
        """Return identity and keepalive options shared by ssh and rsync."""
        return [
            '-i', self.identity_file,
            '-o', f'ConnectTimeout={SSH_CONNECT_TIMEOUT}',
            '-o', f'ServerAliveInterval={SSH_SERVER_ALIVE_INTERVAL}',
            '-o', f'ServerAliveCountMax={SSH_SERVER_ALIVE_COUNT_MAX}',
        ]


def build_listing_command(archive_path: str) -> str:
    """Build the remote shell command listing non-empty YYYY/MM/DD directories."""
    root = shlex.quote(archive_path)
    return (
        f"find {root} -mindepth 3 -maxdepth 3 -type d -path '{DATE_DIR_PATTERN}' 2>/dev/null"
        ' | while read dir; do if [ -n "$(ls -A "$dir" 2>/dev/null)" ]; then echo "$dir"; fi; done'
    )


def parse_listing(output: str, archive_path: str) -> RemoteArchiveIndex:
    """Parse the remote listing into an index of ISO date keys.
    
    Args:
        output: One directory path per line.
        archive_path: Remote archive root to strip from each line.
        
    Returns:
        RemoteArchiveIndex of the dates found. Lines that do not reduce
        to exactly three path components are ignored.
    """
    keys = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        
        relative = line[len(archive_path):] if line.startswith(archive_path) else line
        parts = relative.lstrip('/').split('/')
        if len(parts) == 3:
            keys.append('-'.join(parts))
    
    return RemoteArchiveIndex(keys)


class RemoteArchiveProbe:
    """Lists the dates already present on the remote host with one SSH call."""
    
    def __init__(self, target: RemoteTarget):
        self.target = target
        self.logger = logging.getLogger(__name__)
    
    def list_remote_archive_dates(self) -> RemoteArchiveIndex:
        """Query the remote host for archived dates.
        
        Returns:
            RemoteArchiveIndex; empty if nothing is archived yet.
            
        Raises:
            RemoteProbeError: If the SSH command fails.
        """
        self.logger.debug("Retrieving remote archive structure")
        
        cmd = ['ssh'] + self.target.ssh_options() + [
            self.target.destination,
            build_listing_command(self.target.archive_path),
        ]
        
        try:
            returncode, output = run_command(cmd)
        except OSError as e:
            raise RemoteProbeError(f"failed to run ssh: {e}")
        
        if returncode != 0:
            self.logger.debug(f"Remote structure query output: {output}")
            raise RemoteProbeError(
                f"failed to query remote archive structure (exit status {returncode})", output
            )
        
        index = parse_listing(output, self.target.archive_path)
        self.logger.debug(f"Retrieved {len(index)} existing archives from remote")
        return index


class RsyncBatchSyncer:
    """Transfers the local batch tree to the remote archive in one rsync call."""
    
    def __init__(self, target: RemoteTarget):
        self.target = target
        self.logger = logging.getLogger(__name__)
    
    def build_command(self, source_dir: str) -> List[str]:
        remote_shell = ' '.join(['ssh'] + [shlex.quote(opt) for opt in self.target.ssh_options()])
        return [
            'rsync',
            '-avz',
            f'--timeout={RSYNC_TIMEOUT}',
            '-e', remote_shell,
            source_dir.rstrip('/') + '/',
            f"{self.target.destination}:{self.target.archive_path.rstrip('/')}/",
        ]
    
    def sync(self, source_dir: str) -> None:
        """Mirror source_dir's contents into the remote archive root.
        
        Remote-only files are never deleted. A failed transfer is not
        rolled back.
        
        Raises:
            SyncError: If rsync fails.
        """
        self.logger.debug("Starting batch sync to remote server")
        
        try:
            returncode, output = run_command(self.build_command(source_dir))
        except OSError as e:
            raise SyncError(f"failed to run rsync: {e}")
        
        if returncode != 0:
            self.logger.debug(f"Rsync output: {output}")
            raise SyncError(f"batch rsync failed (exit status {returncode})", output)
        
        self.logger.debug("Batch sync completed successfully")
