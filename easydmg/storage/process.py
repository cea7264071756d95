"""External tool execution for hdiutil, xattr and ditto.

Every call blocks until the child exits. The orchestrator issues these calls
from a worker thread (see ``easydmg.services.fallback``) so fallback messages
can still be emitted while a command is in flight.
"""

from __future__ import annotations

import subprocess
from typing import Sequence

from easydmg.domain import CommandResult
from easydmg.logging import LoggerFactory


log = LoggerFactory.for_process()
output_log = log.bind(tags=["process", "command-output"])

# Reported when the child could not be started at all.
SPAWN_FAILURE_STATUS = 127


def run_command(
    executable: str,
    args: Sequence[str] = (),
    *,
    timeout: float | None = None,
) -> CommandResult:
    """Run ``executable`` with ``args`` and capture its output.

    Args:
        executable: Absolute path of the tool (e.g., ``/usr/bin/hdiutil``)
        args: Ordered argument list, passed without a shell
        timeout: Optional timeout in seconds

    Returns:
        CommandResult with exit code, stdout and stderr. A child that cannot
        be spawned, or that times out, is reported as a non-zero status with
        no output; the caller decides whether that is tolerable.
    """
    command = [executable, *args]
    log.debug(f"Running command: {' '.join(command)}")
    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as error:
        log.error(f"Failed to run {executable}: {error}")
        return CommandResult(returncode=SPAWN_FAILURE_STATUS)

    stdout = completed.stdout or ""
    stderr = completed.stderr or ""
    if stdout.strip():
        output_log.trace(f"stdout: {stdout.strip()}")
    if stderr.strip():
        output_log.trace(f"stderr: {stderr.strip()}")
    if completed.returncode != 0:
        log.debug(f"Command exited with {completed.returncode}: {' '.join(command)}")
    return CommandResult(
        returncode=completed.returncode,
        stdout=stdout,
        stderr=stderr,
    )


class ProcessRunner:
    """Injectable wrapper around :func:`run_command`.

    Tests substitute a scripted runner with the same ``run`` signature.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    def run(self, executable: str, args: Sequence[str] = ()) -> CommandResult:
        return run_command(executable, args, timeout=self.timeout)
