"""Disk image attach/detach utilities built on hdiutil.

Functions:
    - attach(): Mount a disk image read-only and hidden, return MountResult
    - parse_mount_point(): Extract the /Volumes/... path from attach output
    - detach(): Detach a mounted volume once, optionally forced
    - detach_with_retry(): Detach with busy-retry and force escalation
    - clear_quarantine(): Recursively drop the quarantine attribute

Example:
    >>> result = attach("/Users/me/Downloads/MyApp.dmg")
    >>> if result.ok:
    ...     detach_with_retry(result.mount_point)
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Optional

from easydmg.domain import CommandResult, MountResult
from easydmg.logging import LoggerFactory

from .process import ProcessRunner


log = LoggerFactory.for_process()

HDIUTIL = "/usr/bin/hdiutil"
XATTR = "/usr/bin/xattr"

VOLUMES_PREFIX = "/Volumes/"
QUARANTINE_ATTRIBUTE = "com.apple.quarantine"

# Substrings in attach output that mean the image did not mount cleanly.
SUSPICIOUS_OUTPUT_KEYWORDS = ("error", "failed", "invalid")
BUSY_INDICATOR = "resource busy"

UNMOUNT_RETRY_DELAY = 0.25

_default_runner = ProcessRunner()


def parse_mount_point(output: str) -> Optional[str]:
    """Find the mount point in ``hdiutil attach`` output.

    The last column of the attach table holds the mount point, e.g.
    ``/dev/disk4s1\\tApple_HFS\\t/Volumes/My App``. Volume names may contain
    spaces, so the path runs from ``/Volumes/`` to the first tab or newline.

    Returns:
        The mount point path, or None if no line carries one
    """
    for line in output.splitlines():
        index = line.find(VOLUMES_PREFIX)
        if index < 0:
            continue
        mount_point = line[index:].strip()
        for separator in ("\t", "\n", "\r"):
            cut = mount_point.find(separator)
            if cut >= 0:
                mount_point = mount_point[:cut]
        if mount_point:
            return mount_point
    return None


def _suspicious_keyword(output: str) -> Optional[str]:
    lowered = output.lower()
    for keyword in SUSPICIOUS_OUTPUT_KEYWORDS:
        if keyword in lowered:
            return keyword
    return None


def attach(image_path: str | Path, runner: ProcessRunner | None = None) -> MountResult:
    """Attach a disk image without browsing, read-only, without auto-open.

    Args:
        image_path: Path of the .dmg file
        runner: Process runner (defaults to the real one)

    Returns:
        MountResult carrying either the mount point or the failure reason.
        A failure caused by suspicious output keeps the parsed mount point,
        since the volume may be attached. Mount failures are never retried.
    """
    runner = runner or _default_runner
    image_path = str(image_path)
    log.info(f"Mounting {image_path}")
    result = runner.run(
        HDIUTIL, ["attach", image_path, "-nobrowse", "-readonly", "-noautoopen"]
    )

    if not result.ok:
        reason = result.stderr.strip() or f"hdiutil exited with status {result.returncode}"
        log.warning(f"Mount failed with status {result.returncode}: {reason}")
        return MountResult.failed(reason)

    mount_point = parse_mount_point(result.stdout)

    keyword = _suspicious_keyword(result.stdout)
    if keyword:
        log.warning(f"Unexpected mount output detected ({keyword!r})")
        # hdiutil may have attached the volume anyway; hand it back for detaching.
        return MountResult.failed(f"Unexpected output from hdiutil: {keyword}", mount_point)

    if mount_point is None:
        log.warning("Failed to determine mount point from hdiutil output")
        return MountResult.failed("No mount point in hdiutil output")

    log.info(f"Mounted at {mount_point}")
    return MountResult.mounted(mount_point)


def detach(
    mount_point: str | Path,
    runner: ProcessRunner | None = None,
    *,
    force: bool = False,
) -> CommandResult:
    """Detach a volume once. Returns the raw command result."""
    runner = runner or _default_runner
    args = ["detach", str(mount_point)]
    if force:
        args.append("-force")
    return runner.run(HDIUTIL, args)


def detach_with_retry(
    mount_point: str | Path,
    runner: ProcessRunner | None = None,
    *,
    retry_delay: float = UNMOUNT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[bool, bool]:
    """Detach a volume, retrying once when busy and forcing as a last resort.

    Args:
        mount_point: Volume to detach
        runner: Process runner
        retry_delay: Seconds to wait before the single busy retry
        sleep: Sleep function (injectable for tests)

    Returns:
        Tuple of (success, used_force)
    """
    log.info(f"Unmounting {mount_point}")
    result = detach(mount_point, runner)
    if result.ok:
        return True, False

    if BUSY_INDICATOR in result.stderr.lower():
        log.debug(f"Volume busy, retrying detach in {retry_delay}s")
        sleep(retry_delay)
        result = detach(mount_point, runner)
        if result.ok:
            return True, False

    log.warning("Failed to detach volume, trying force detach...")
    forced = detach(mount_point, runner, force=True)
    if forced.ok:
        return True, True

    reason = forced.stderr.strip() or f"status {forced.returncode}"
    log.warning(f"Force detach of {mount_point} failed: {reason}")
    return False, True


def clear_quarantine(path: str | Path, runner: ProcessRunner | None = None) -> bool:
    """Recursively remove the quarantine attribute from an installed app.

    Best-effort: a failure is logged and reported as False.
    """
    runner = runner or _default_runner
    result = runner.run(XATTR, ["-r", "-d", QUARANTINE_ATTRIBUTE, str(path)])
    if not result.ok:
        reason = result.stderr.strip() or f"status {result.returncode}"
        log.warning(f"Could not clear quarantine attribute on {path}: {reason}")
        return False
    log.debug(f"Cleared quarantine attribute on {path}")
    return True
