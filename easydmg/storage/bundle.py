"""Copy and remove installed app bundles.

The copy is byte- and structure-preserving: symlinks stay symlinks and
permission bits, timestamps and extended attributes are kept. On macOS this
is delegated to ``ditto``; elsewhere ``shutil.copytree`` with ``copy2`` is used.
"""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path

from easydmg.logging import get_logger

from .exceptions import CopyFailureError, RemovalFailureError
from .process import ProcessRunner


log = get_logger(source="bundle", tags=["install", "copy"])

DITTO = "/usr/bin/ditto"


def _use_ditto() -> bool:
    return sys.platform == "darwin"


def bundle_exists(path: str | Path) -> bool:
    """True if anything (including a dangling symlink) occupies ``path``."""
    return os.path.lexists(path)


def copy_bundle(
    source: str | Path,
    destination: str | Path,
    runner: ProcessRunner | None = None,
) -> None:
    """Copy an app bundle to its destination.

    No rollback is attempted on failure; a partial copy may remain.

    Raises:
        CopyFailureError: If the copy fails for any reason
    """
    source = Path(source)
    destination = Path(destination)
    log.info(f"Copying {source.name} to {destination}")

    if _use_ditto():
        result = (runner or ProcessRunner()).run(DITTO, [str(source), str(destination)])
        if not result.ok:
            reason = result.stderr.strip() or f"ditto exited with status {result.returncode}"
            raise CopyFailureError(source, destination, reason)
        return

    try:
        if source.is_dir() and not source.is_symlink():
            shutil.copytree(
                source, destination, symlinks=True, copy_function=shutil.copy2
            )
        else:
            shutil.copy2(source, destination, follow_symlinks=False)
    except (shutil.Error, OSError) as error:
        raise CopyFailureError(source, destination, str(error)) from error


def remove_bundle(path: str | Path) -> None:
    """Remove a previously installed app (directory, file or symlink).

    Raises:
        RemovalFailureError: If the entry cannot be removed
    """
    path = Path(path)
    log.info(f"Removing old version at {path}")
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as error:
        raise RemovalFailureError(path, str(error)) from error
