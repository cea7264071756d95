"""Domain model for disk image installs.

Type-safe objects passed between the orchestrator, the process runner and
the discovery/validation helpers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


# ==============================================================================
# Preferences
# ==============================================================================


class FeedbackMode(Enum):
    """How an install job reports its progress."""

    PROGRESS = "progress"  # progress display
    NOTIFICATION = "notification"  # system notification on completion
    SILENT = "silent"


@dataclass(frozen=True)
class Preferences:
    """Read-only snapshot of user preferences, taken once per job."""

    feedback_mode: FeedbackMode = FeedbackMode.PROGRESS
    auto_trash: bool = True
    reveal_after_install: bool = True


# ==============================================================================
# Process / Mount Results
# ==============================================================================


@dataclass(frozen=True)
class CommandResult:
    """Exit status and captured output of an external tool."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True)
class MountResult:
    """Outcome of attaching a disk image: a mount point or a failure reason.

    A failure may still carry a mount point when hdiutil attached the volume
    but its output was not trusted; that volume has to be detached.
    """

    mount_point: Path | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.mount_point is not None and self.reason is None

    @classmethod
    def mounted(cls, mount_point: str | Path) -> MountResult:
        return cls(mount_point=Path(mount_point))

    @classmethod
    def failed(cls, reason: str, mount_point: str | Path | None = None) -> MountResult:
        return cls(
            mount_point=Path(mount_point) if mount_point is not None else None,
            reason=reason,
        )


@dataclass(frozen=True)
class BundleCandidate:
    """A top-level ``.app`` entry found on a mounted volume."""

    path: Path

    @property
    def name(self) -> str:
        return self.path.name


# ==============================================================================
# Install Job
# ==============================================================================


class JobState(Enum):
    """Pipeline stage of an install job."""

    IDLE = "idle"
    MOUNTING = "mounting"
    DISCOVERING = "discovering"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    VALIDATING = "validating"
    COPYING = "copying"
    POST_PROCESSING = "post_processing"
    UNMOUNTING = "unmounting"
    CLEANUP = "cleanup"
    TERMINAL = "terminal"


class OutcomeKind(Enum):
    """Terminal outcome of an install job."""

    SUCCESS = "success"
    MANUAL_FALLBACK = "manual_fallback"
    ERROR = "error"


class ReplaceDecision(Enum):
    """Answer to "an app with this name is already installed"."""

    REPLACE = "replace"
    SKIP = "skip"


@dataclass(frozen=True)
class JobOutcome:
    """Exactly one of Success, ManualFallback(reason) or Error(message)."""

    kind: OutcomeKind
    message: str = ""
    installed_path: Path | None = None
    skipped: bool = False

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def success(
        cls, installed_path: Path | None = None, *, skipped: bool = False
    ) -> JobOutcome:
        return cls(OutcomeKind.SUCCESS, installed_path=installed_path, skipped=skipped)

    @classmethod
    def manual_fallback(cls, reason: str) -> JobOutcome:
        return cls(OutcomeKind.MANUAL_FALLBACK, message=reason)

    @classmethod
    def error(cls, message: str) -> JobOutcome:
        return cls(OutcomeKind.ERROR, message=message)


@dataclass
class DiskImageJob:
    """One installation attempt, owned by the orchestrator until it terminates.

    The whole pipeline position is held here (current state plus the fields
    filled in along the way), so a job paused at the confirmation gate can be
    inspected and resumed.
    """

    job_id: str
    image_path: Path
    destination_dir: Path
    preferences: Preferences = field(default_factory=Preferences)
    state: JobState = JobState.IDLE
    mount_point: Path | None = None
    candidates: list[Path] = field(default_factory=list)
    selected_bundle: Path | None = None
    outcome: JobOutcome | None = None
    history: list[JobState] = field(default_factory=list)
    unmount_attempted: bool = False

    @property
    def image_name(self) -> str:
        return self.image_path.name

    @property
    def destination_path(self) -> Path | None:
        """Where the selected bundle is (or will be) installed."""
        if self.selected_bundle is None:
            return None
        return self.destination_dir / self.selected_bundle.name

    @property
    def is_terminal(self) -> bool:
        return self.state is JobState.TERMINAL

    def transition(self, state: JobState) -> None:
        if self.is_terminal:
            raise RuntimeError(f"Job {self.job_id} already terminated")
        self.history.append(self.state)
        self.state = state

    def assign_mount_point(self, mount_point: Path) -> None:
        if self.mount_point is not None:
            raise RuntimeError(
                f"Job {self.job_id} is already mounted at {self.mount_point}"
            )
        self.mount_point = mount_point

    def finish(self, outcome: JobOutcome) -> None:
        self.transition(JobState.TERMINAL)
        self.outcome = outcome
