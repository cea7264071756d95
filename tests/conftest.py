"""
Pytest configuration and shared fixtures for easydmg tests.

This module provides the fakes used across test modules: a scripted process
runner standing in for hdiutil/xattr, recording progress reporter, Finder
workspace and notifier, and a throwaway volume/destination layout.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pytest

from easydmg.domain import CommandResult, Preferences, ReplaceDecision
from easydmg.services.confirmation import FixedConfirmationGate
from easydmg.services.feedback import Notifier, ProgressReporter
from easydmg.services.installer import Installer
from easydmg.services.workspace import Workspace
from easydmg.storage import diskimage


GIB = 1024**3
MIB = 1024**2


# ==============================================================================
# Process Runner Fakes
# ==============================================================================


def attach_output(mount_point) -> str:
    """Format ``hdiutil attach`` stdout for a single-partition image."""
    return (
        "/dev/disk4          \tGUID_partition_scheme          \t\n"
        "/dev/disk4s1        \tApple_HFS                      \t"
        f"{mount_point}\n"
    )


class ScriptedRunner:
    """Stands in for ProcessRunner; records calls and replays scripted results."""

    def __init__(self, mount_point: Optional[Path] = None):
        self.mount_point = mount_point
        self.calls: List[Tuple[str, List[str]]] = []
        self.attach_results: List[CommandResult] = []
        self.detach_results: List[CommandResult] = []
        self.xattr_result = CommandResult(0)
        self.on_attach: Optional[Callable[[], None]] = None
        self.on_detach: Optional[Callable[[], None]] = None

    def run(self, executable, args=()) -> CommandResult:
        args = list(args)
        self.calls.append((executable, args))
        if executable == diskimage.HDIUTIL and args and args[0] == "attach":
            if self.on_attach:
                self.on_attach()
            if self.attach_results:
                return self.attach_results.pop(0)
            return CommandResult(0, stdout=attach_output(self.mount_point))
        if executable == diskimage.HDIUTIL and args and args[0] == "detach":
            if self.on_detach:
                self.on_detach()
            if self.detach_results:
                return self.detach_results.pop(0)
            return CommandResult(0)
        if executable == diskimage.XATTR:
            return self.xattr_result
        return CommandResult(0)

    def hdiutil(self, subcommand: str) -> List[List[str]]:
        return [
            args
            for executable, args in self.calls
            if executable == diskimage.HDIUTIL and args and args[0] == subcommand
        ]

    def xattr_calls(self) -> List[List[str]]:
        return [args for executable, args in self.calls if executable == diskimage.XATTR]


# ==============================================================================
# Collaborator Fakes
# ==============================================================================


class RecordingReporter(ProgressReporter):
    def __init__(self):
        self.events: list = []

    def show(self, message, progress=0.0):
        self.events.append(("show", message, progress))

    def update(self, message, progress=None):
        self.events.append(("update", message, progress))

    def hide(self):
        self.events.append(("hide", None, None))

    @property
    def messages(self) -> List[str]:
        return [message for kind, message, _ in self.events if kind != "hide"]

    @property
    def fractions(self) -> List[float]:
        return [progress for kind, _, progress in self.events if progress is not None]


class RecordingWorkspace(Workspace):
    def __init__(self):
        self.opened: List[Path] = []
        self.revealed: List[Path] = []

    def open(self, path):
        self.opened.append(Path(path))
        return True

    def reveal(self, path):
        self.revealed.append(Path(path))
        return True


class RecordingNotifier(Notifier):
    def __init__(self):
        self.notifications: List[Tuple[str, str]] = []

    def notify(self, title, message):
        self.notifications.append((title, message))


# ==============================================================================
# Filesystem Fixtures
# ==============================================================================


def make_bundle(parent: Path, name: str, payload: bytes = b"binary") -> Path:
    """Create a minimal .app bundle directory."""
    bundle = parent / name
    macos = bundle / "Contents" / "MacOS"
    macos.mkdir(parents=True)
    executable = macos / Path(name).stem
    executable.write_bytes(payload)
    executable.chmod(0o755)
    (bundle / "Contents" / "Info.plist").write_text("<plist/>", encoding="utf-8")
    return bundle


@pytest.fixture(autouse=True)
def isolated_trash(tmp_path, monkeypatch) -> Path:
    """Keep tests away from the real ~/.Trash."""
    trash = tmp_path / ".Trash"
    monkeypatch.setattr("easydmg.storage.trash.TRASH_DIR", trash)
    return trash


@pytest.fixture
def volumes_root(tmp_path_factory, monkeypatch) -> Path:
    """A stand-in for /Volumes that attach output can point into."""
    root = tmp_path_factory.mktemp("Volumes")
    monkeypatch.setattr(diskimage, "VOLUMES_PREFIX", f"{root}/")
    return root


@pytest.fixture
def volume(volumes_root) -> Path:
    """Mounted volume directory, empty until a test adds bundles."""
    path = volumes_root / "MyApp"
    path.mkdir()
    return path


@pytest.fixture
def destination_dir(tmp_path) -> Path:
    path = tmp_path / "Applications"
    path.mkdir()
    return path


@pytest.fixture
def image_path(tmp_path) -> Path:
    path = tmp_path / "Downloads" / "MyApp.dmg"
    path.parent.mkdir()
    path.write_bytes(b"dmg")
    return path


@pytest.fixture
def temp_settings_file(tmp_path) -> Path:
    path = tmp_path / "config" / "settings.json"
    path.parent.mkdir()
    return path


# ==============================================================================
# Installer Fixtures
# ==============================================================================


@pytest.fixture
def runner(volume) -> ScriptedRunner:
    return ScriptedRunner(mount_point=volume)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def workspace() -> RecordingWorkspace:
    return RecordingWorkspace()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_installer(runner, reporter, workspace, notifier, destination_dir, mocker):
    """Factory for an Installer wired to the fakes; keyword overrides win."""
    mocker.patch("easydmg.storage.bundle._use_ditto", return_value=False)

    def factory(**overrides) -> Installer:
        options = dict(
            confirmation_gate=FixedConfirmationGate(ReplaceDecision.REPLACE),
            preferences=lambda: Preferences(),
            reporter_factory=lambda mode: reporter,
            notifier=notifier,
            workspace=workspace,
            runner=runner,
            destination_dir=destination_dir,
            completion_hold=0,
            error_hold=0,
            free_bytes=lambda path: 100 * GIB,
            sleep=lambda seconds: None,
        )
        options.update(overrides)
        return Installer(**options)

    return factory
