"""Safety checks run before an app bundle is copied.

This module provides validation functions that keep a copy from starting
when it cannot succeed:
- Destination directory exists, is a directory and is writable
- Destination volume has room for the app plus a fixed safety margin

Validation functions raise specific exceptions from the exceptions module;
``has_sufficient_space`` is the boolean predicate behind the space check.

Example:
    from easydmg.storage.validation import validate_install

    try:
        validate_install(bundle_path, Path("/Applications"))
    except ValidationError:
        ...
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

import psutil

from easydmg.logging import get_logger

from .exceptions import (
    DestinationMissingError,
    DestinationNotDirectoryError,
    DestinationNotWritableError,
    InsufficientSpaceError,
)


log = get_logger(source="validation", tags=["install", "validation"])

# Headroom left on the destination volume after the copy.
SAFETY_MARGIN_BYTES = 500 * 1024 * 1024


def validate_destination_directory(destination: str | Path) -> None:
    """Validate that the destination exists, is a directory and is writable.

    Raises:
        DestinationMissingError: If nothing exists at the path
        DestinationNotDirectoryError: If the path is a file
        DestinationNotWritableError: If the directory is not writable
    """
    destination = Path(destination)
    if not destination.exists():
        raise DestinationMissingError(destination)
    if not destination.is_dir():
        raise DestinationNotDirectoryError(destination)
    if not os.access(destination, os.W_OK):
        raise DestinationNotWritableError(destination)


def compute_required_bytes(bundle: str | Path) -> int:
    """Sum the sizes of all regular files inside a bundle, without following links."""
    bundle = Path(bundle)
    if bundle.is_file():
        return bundle.stat().st_size
    total = 0
    for root, _dirs, files in os.walk(bundle):
        for name in files:
            path = os.path.join(root, name)
            try:
                stat = os.lstat(path)
            except OSError:
                continue
            if not os.path.islink(path):
                total += stat.st_size
    return total


def get_free_bytes(destination: str | Path) -> Optional[int]:
    """Free bytes on the volume holding ``destination``, or None if unknown."""
    try:
        return psutil.disk_usage(str(destination)).free
    except OSError as error:
        log.warning(f"Could not determine free space on {destination}: {error}")
        return None


def has_sufficient_space(
    required_bytes: int,
    destination: str | Path,
    *,
    margin_bytes: int = SAFETY_MARGIN_BYTES,
    free_bytes: Callable[[str | Path], Optional[int]] = get_free_bytes,
) -> bool:
    """Check that ``required_bytes`` plus the safety margin fit on the destination volume.

    An undeterminable free-space figure counts as sufficient (fail-open). A
    legitimately full disk then surfaces as a copy failure instead.
    """
    available = free_bytes(destination)
    if available is None:
        log.warning("Free space unknown, proceeding without a space check")
        return True
    return available >= required_bytes + margin_bytes


def validate_sufficient_space(
    bundle: str | Path,
    destination: str | Path,
    *,
    free_bytes: Callable[[str | Path], Optional[int]] = get_free_bytes,
) -> None:
    """Validate that the bundle fits on the destination volume.

    Free space is queried once; an unknown figure passes (fail-open).

    Raises:
        InsufficientSpaceError: If free space is below size + safety margin
    """
    required = compute_required_bytes(bundle)
    available = free_bytes(destination)
    if not has_sufficient_space(required, destination, free_bytes=lambda _: available):
        raise InsufficientSpaceError(destination, required + SAFETY_MARGIN_BYTES, available)


def validate_install(
    bundle: str | Path,
    destination: str | Path,
    *,
    free_bytes: Callable[[str | Path], Optional[int]] = get_free_bytes,
) -> None:
    """Run all pre-copy checks in order: directory validity, then space.

    Raises:
        Various ValidationError subclasses if a check fails
    """
    validate_destination_directory(destination)
    validate_sufficient_space(bundle, destination, free_bytes=free_bytes)
