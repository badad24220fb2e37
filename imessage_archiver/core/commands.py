"""Thin wrapper around subprocess for the external tools the archiver drives."""

import logging
import subprocess
from typing import List, Tuple

logger = logging.getLogger(__name__)


def run_command(cmd: List[str]) -> Tuple[int, str]:
    """Run a command and capture its combined stdout and stderr.
    
    No timeout is applied; remote commands rely on the SSH connection
    options for stalled links.
    
    Args:
        cmd: Command and arguments.
        
    Returns:
        Tuple of (return code, combined output). Output is decoded as
        UTF-8 with undecodable bytes replaced.
        
    Raises:
        FileNotFoundError: If the executable does not exist.
    """
    logger.debug(f"Running command: {' '.join(cmd)}")
    result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    output = (result.stdout or b"").decode("utf-8", errors="replace")
    return result.returncode, output
