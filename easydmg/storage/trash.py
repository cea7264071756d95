"""Move files to the user's Trash."""

from __future__ import annotations

import shutil
import time
from pathlib import Path

from easydmg.logging import get_logger


log = get_logger(source="trash", tags=["install", "cleanup"])

TRASH_DIR = Path.home() / ".Trash"


def _unique_target(trash_dir: Path, name: str) -> Path:
    target = trash_dir / name
    if not target.exists():
        return target
    # Same scheme as Finder: "Name 14.03.27.dmg"
    stem = Path(name).stem
    suffix = Path(name).suffix
    stamp = time.strftime("%H.%M.%S")
    target = trash_dir / f"{stem} {stamp}{suffix}"
    counter = 2
    while target.exists():
        target = trash_dir / f"{stem} {stamp} {counter}{suffix}"
        counter += 1
    return target


def move_to_trash(path: str | Path, trash_dir: Path | None = None) -> Path:
    """Move ``path`` into the Trash and return its new location.

    Raises:
        FileNotFoundError: If ``path`` does not exist
        OSError: If the move fails
    """
    path = Path(path)
    trash_dir = trash_dir or TRASH_DIR
    if not path.exists():
        raise FileNotFoundError(f"Nothing to trash at {path}")
    trash_dir.mkdir(parents=True, exist_ok=True)
    target = _unique_target(trash_dir, path.name)
    shutil.move(str(path), str(target))
    log.debug(f"Moved {path.name} to {target}")
    return target
