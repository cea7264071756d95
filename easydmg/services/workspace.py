"""Finder integration: open images for manual install, reveal installed apps."""

from __future__ import annotations

import subprocess
from pathlib import Path

from easydmg.logging import LoggerFactory


log = LoggerFactory.for_system()

OPEN = "/usr/bin/open"


class Workspace:
    """Fire-and-forget calls to ``open``. Failures are logged, never raised."""

    def _launch(self, args: list[str]) -> bool:
        try:
            subprocess.Popen(
                [OPEN, *args],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as error:
            log.warning(f"Could not run open {' '.join(args)}: {error}")
            return False
        return True

    def open(self, path: str | Path) -> bool:
        """Open ``path`` with its default handler (mounts and shows a .dmg)."""
        log.info(f"Opening {path} for manual installation")
        return self._launch([str(path)])

    def reveal(self, path: str | Path) -> bool:
        """Select ``path`` in a Finder window."""
        log.debug(f"Revealing {path}")
        return self._launch(["-R", str(path)])
