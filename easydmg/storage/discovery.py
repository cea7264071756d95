"""App bundle discovery on a mounted volume.

Only the top level of the volume is scanned. Helper bundles (uninstallers,
nested installers, readmes) are filtered out by name so the common
"App + Uninstaller" layout still installs automatically.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional

from easydmg.domain import BundleCandidate
from easydmg.logging import get_logger


log = get_logger(source="discovery", tags=["install", "discovery"])

BUNDLE_SUFFIX = ".app"
HIDDEN_PREFIX = "."
HELPER_KEYWORDS = ("uninstall", "installer", "helper", "readme")


def discover_bundles(mount_point: str | Path) -> list[BundleCandidate]:
    """List top-level app bundles on a mounted volume.

    Hidden entries are skipped. A directory that cannot be read yields an
    empty list, which the orchestrator treats as "no app found".
    """
    mount_point = Path(mount_point)
    try:
        names = sorted(entry.name for entry in os.scandir(mount_point))
    except OSError as error:
        log.warning(f"Error scanning mount point {mount_point}: {error}")
        return []

    candidates = [
        BundleCandidate(mount_point / name)
        for name in names
        if name.endswith(BUNDLE_SUFFIX) and not name.startswith(HIDDEN_PREFIX)
    ]
    log.debug(f"Found {len(candidates)} .app file(s) on {mount_point}")
    return candidates


def is_helper_bundle(candidate: BundleCandidate) -> bool:
    name = candidate.name.lower()
    return any(keyword in name for keyword in HELPER_KEYWORDS)


def filter_helpers(candidates: Iterable[BundleCandidate]) -> list[BundleCandidate]:
    """Drop candidates whose name looks like an uninstaller, installer, helper or readme."""
    return [candidate for candidate in candidates if not is_helper_bundle(candidate)]


def select_bundle(candidates: list[BundleCandidate]) -> Optional[BundleCandidate]:
    """Pick the app to install, or None when a human has to decide.

    A single survivor of helper filtering wins. Otherwise the unfiltered
    list decides: exactly one candidate is installed, zero or several are
    ambiguous.
    """
    filtered = filter_helpers(candidates)
    if len(filtered) == 1:
        if len(candidates) > 1:
            log.debug(
                f"Selected {filtered[0].name} after filtering {len(candidates) - 1} helper(s)"
            )
        return filtered[0]
    if len(candidates) == 1:
        return candidates[0]
    return None
