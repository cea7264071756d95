"""Custom exceptions for install operations.

This module defines a hierarchy of exceptions so the orchestrator can tell
fatal job failures apart and produce specific error messages.

Exception Hierarchy:
    InstallError (base)
        ├── ImageNotFoundError
        ├── JobActiveError
        ├── MountError
        │   └── MountFailureError
        ├── DiscoveryAmbiguousError
        ├── ValidationError
        │   ├── DestinationMissingError
        │   ├── DestinationNotDirectoryError
        │   ├── DestinationNotWritableError
        │   └── InsufficientSpaceError
        ├── CopyFailureError
        └── RemovalFailureError

Usage:
    from easydmg.storage.exceptions import DestinationNotWritableError

    if not os.access(destination, os.W_OK):
        raise DestinationNotWritableError(destination)
"""

from __future__ import annotations

from pathlib import Path
from typing import Union


PathLike = Union[str, Path]


class InstallError(Exception):
    """Base exception for all install operations."""


class ImageNotFoundError(InstallError):
    """The disk image to install from does not exist."""

    def __init__(self, image_path: PathLike):
        self.image_path = Path(image_path)
        super().__init__(f"File not found: {self.image_path.name}")


class JobActiveError(InstallError):
    """An install job is already running; new submissions are rejected."""

    def __init__(self, active_image: PathLike | None = None):
        self.active_image = Path(active_image) if active_image else None
        msg = "Already processing a disk image"
        if self.active_image:
            msg += f": {self.active_image.name}"
        super().__init__(msg)


class MountError(InstallError):
    """Base exception for attach/detach errors."""


class MountFailureError(MountError):
    """The disk image could not be attached."""

    def __init__(self, image_path: PathLike, reason: str):
        self.image_path = Path(image_path)
        self.reason = reason
        super().__init__(f"Failed to mount {self.image_path.name}: {reason}")


class DiscoveryAmbiguousError(InstallError):
    """Zero, or more than one, installable app was found on the volume.

    The orchestrator turns this into a manual fallback, not an error.
    """

    def __init__(self, mount_point: PathLike, candidate_count: int):
        self.mount_point = Path(mount_point)
        self.candidate_count = candidate_count
        if candidate_count == 0:
            msg = "No .app files found"
        else:
            msg = f"Multiple .app files found ({candidate_count})"
        super().__init__(msg)


class ValidationError(InstallError):
    """Base exception for destination checks."""


class DestinationMissingError(ValidationError):
    """Destination directory does not exist."""

    def __init__(self, destination: PathLike):
        self.destination = Path(destination)
        super().__init__(f"Destination does not exist: {self.destination}")


class DestinationNotDirectoryError(ValidationError):
    """Destination exists but is not a directory."""

    def __init__(self, destination: PathLike):
        self.destination = Path(destination)
        super().__init__(f"Destination is not a directory: {self.destination}")


class DestinationNotWritableError(ValidationError):
    """Destination directory is not writable by this user."""

    def __init__(self, destination: PathLike):
        self.destination = Path(destination)
        super().__init__(f"Destination is not writable: {self.destination}")


class InsufficientSpaceError(ValidationError):
    """Destination volume does not have room for the app plus the safety margin."""

    def __init__(
        self,
        destination: PathLike,
        required_bytes: int,
        available_bytes: int | None = None,
    ):
        self.destination = Path(destination)
        self.required_bytes = required_bytes
        self.available_bytes = available_bytes
        msg = f"Not enough free space on {self.destination} ({required_bytes} bytes required"
        if available_bytes is not None:
            msg += f", {available_bytes} bytes available"
        super().__init__(msg + ")")


class CopyFailureError(InstallError):
    """Copying the app bundle failed; a partial copy may remain."""

    def __init__(self, source: PathLike, destination: PathLike, reason: str):
        self.source = Path(source)
        self.destination = Path(destination)
        self.reason = reason
        super().__init__(f"Installation failed: {reason}")


class RemovalFailureError(InstallError):
    """Removing the previously installed app failed."""

    def __init__(self, path: PathLike, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to remove old version of {self.path.name}: {reason}")
