"""Installation orchestrator.

Drives one disk image through the install pipeline:

    Idle -> Mounting -> Discovering -> (AwaitingConfirmation) -> Validating
         -> Copying -> PostProcessing -> Unmounting -> Cleanup -> Terminal

Every terminal outcome is one of Success, ManualFallback(reason) or
Error(message). Once a volume has been mounted, it is detached before the job
terminates, whatever the outcome. Only one job runs at a time; a submission
while a job is active raises ``JobActiveError``.

Collaborators (preferences, reporter, confirmation gate, notifier, Finder
workspace, process runner) are injected so tests can substitute fakes.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, Optional, Sequence

from easydmg.config.settings import load_preferences
from easydmg.domain import (
    DiskImageJob,
    FeedbackMode,
    JobOutcome,
    JobState,
    OutcomeKind,
    Preferences,
    ReplaceDecision,
)
from easydmg.logging import LoggerFactory, new_job_id, operation_context
from easydmg.storage.bundle import bundle_exists, copy_bundle, remove_bundle
from easydmg.storage.diskimage import (
    UNMOUNT_RETRY_DELAY,
    attach,
    clear_quarantine,
    detach_with_retry,
)
from easydmg.storage.discovery import discover_bundles, select_bundle
from easydmg.storage.exceptions import (
    DiscoveryAmbiguousError,
    ImageNotFoundError,
    InstallError,
    JobActiveError,
    MountFailureError,
)
from easydmg.storage.process import ProcessRunner
from easydmg.storage.trash import move_to_trash
from easydmg.storage.validation import get_free_bytes, validate_install

from .confirmation import ConfirmationGate
from .fallback import (
    COPY_FALLBACK_MESSAGES,
    FALLBACK_DELAYS,
    MOUNT_FALLBACK_MESSAGES,
    UNMOUNT_FALLBACK_MESSAGES,
    FallbackMessenger,
)
from .feedback import Notifier, ProgressReporter, build_reporter
from .workspace import Workspace


APPLICATIONS_DIR = Path("/Applications")

COMPLETION_HOLD_SECONDS = 1.5
ERROR_HOLD_SECONDS = 3.0

PROGRESS_MOUNTING = 0.05
PROGRESS_DISCOVERING = 0.2
PROGRESS_COPYING = 0.4
PROGRESS_POST_PROCESSING = 0.8
PROGRESS_UNMOUNTING = 0.9
PROGRESS_CLEANUP = 0.95
PROGRESS_COMPLETE = 1.0


class Installer:
    """Runs install jobs one at a time.

    Args:
        confirmation_gate: Asked when the app already exists at the destination
        preferences: Provider called once per job for a preferences snapshot
        reporter_factory: Builds the progress reporter for a job's feedback mode
        notifier: Receives the outcome when the feedback mode is notification
        workspace: Opens images for manual install and reveals installed apps
        runner: Runs hdiutil / xattr / ditto
        destination_dir: Where apps are installed
        fallback_delays: When "still working" messages come due
        free_bytes: Free-space query used by the space check
        sleep: Used for message holds and the busy-unmount retry delay
    """

    def __init__(
        self,
        *,
        confirmation_gate: ConfirmationGate,
        preferences: Callable[[], Preferences] = load_preferences,
        reporter_factory: Callable[[FeedbackMode], ProgressReporter] = build_reporter,
        notifier: Notifier | None = None,
        workspace: Workspace | None = None,
        runner: ProcessRunner | None = None,
        destination_dir: Path = APPLICATIONS_DIR,
        fallback_delays: Sequence[float] = FALLBACK_DELAYS,
        unmount_retry_delay: float = UNMOUNT_RETRY_DELAY,
        completion_hold: float = COMPLETION_HOLD_SECONDS,
        error_hold: float = ERROR_HOLD_SECONDS,
        free_bytes: Callable[[Path], Optional[int]] = get_free_bytes,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.confirmation_gate = confirmation_gate
        self.preferences = preferences
        self.reporter_factory = reporter_factory
        self.notifier = notifier
        self.workspace = workspace or Workspace()
        self.runner = runner or ProcessRunner()
        self.destination_dir = Path(destination_dir)
        self.fallback_delays = tuple(fallback_delays)
        self.unmount_retry_delay = unmount_retry_delay
        self.completion_hold = completion_hold
        self.error_hold = error_hold
        self.free_bytes = free_bytes
        self.sleep = sleep

        self._active = threading.Lock()
        self._job: DiskImageJob | None = None
        self._reporter: ProgressReporter | None = None
        self._fallback: FallbackMessenger | None = None
        self._progress = 0.0
        self._log = LoggerFactory.for_install("-")

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._active.locked()

    @property
    def current_job(self) -> DiskImageJob | None:
        """The running job, or None when idle."""
        return self._job

    def _claim(self, image_path: Path) -> None:
        if not self._active.acquire(blocking=False):
            active = self._job.image_path if self._job else None
            self._log.warning(f"Already processing a disk image, rejecting {image_path}")
            raise JobActiveError(active)

    def install(self, image_path: str | Path) -> JobOutcome:
        """Install from ``image_path`` on the calling thread.

        Raises:
            JobActiveError: If another job is running
        """
        image_path = Path(image_path)
        self._claim(image_path)
        return self._run_job(image_path)

    def start(
        self,
        image_path: str | Path,
        on_complete: Callable[[JobOutcome], None] | None = None,
    ) -> threading.Thread:
        """Install from ``image_path`` on a background thread.

        The single-job check happens here, before the thread starts.
        ``on_complete`` always receives an outcome; an unexpected exception on
        the worker thread is logged and delivered as an Error outcome.

        Raises:
            JobActiveError: If another job is running
        """
        image_path = Path(image_path)
        self._claim(image_path)
        thread = threading.Thread(
            target=self._run_in_background,
            args=(image_path, on_complete),
            name=f"install-{image_path.name}",
            daemon=True,
        )
        thread.start()
        return thread

    def _run_in_background(
        self,
        image_path: Path,
        on_complete: Callable[[JobOutcome], None] | None,
    ) -> None:
        try:
            outcome = self._run_job(image_path)
        except Exception as error:
            self._log.exception(f"Install of {image_path.name} failed unexpectedly: {error}")
            outcome = JobOutcome.error(f"Unexpected error: {error}")
        if on_complete is not None:
            on_complete(outcome)

    def _run_job(self, image_path: Path) -> JobOutcome:
        try:
            preferences = self.preferences()
            job = DiskImageJob(
                job_id=new_job_id(),
                image_path=image_path,
                destination_dir=self.destination_dir,
                preferences=preferences,
            )
            self._job = job
            self._progress = 0.0
            self._reporter = self.reporter_factory(preferences.feedback_mode)
            self._fallback = FallbackMessenger(self._still_working, self.fallback_delays)

            with operation_context(
                "install", job_id=job.job_id, image=str(image_path)
            ) as log:
                self._log = log
                outcome = self._run_pipeline(job)
                log.info(
                    f"Outcome: {outcome.kind.value}",
                    reason=outcome.message,
                    history=[state.value for state in job.history],
                )

            self._announce(job, outcome)
            return outcome
        finally:
            self._job = None
            self._reporter = None
            self._fallback = None
            self._log = LoggerFactory.for_install("-")
            self._active.release()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _run_pipeline(self, job: DiskImageJob) -> JobOutcome:
        self._reporter.show("Preparing...", 0.0)

        if not job.image_path.is_file():
            return self._finish(job, JobOutcome.error(str(ImageNotFoundError(job.image_path))))

        try:
            self._mount(job)
        except MountFailureError as error:
            self._log.warning(f"{error}, falling back to manual install")
            if job.mount_point is not None:
                self._unmount(job)
            self.workspace.open(job.image_path)
            return self._finish(
                job, JobOutcome.manual_fallback(f"DMG requires manual installation: {error.reason}")
            )

        outcome = None
        try:
            outcome = self._install_from_volume(job)
        except DiscoveryAmbiguousError as error:
            self._log.info(str(error))
            outcome = JobOutcome.manual_fallback(str(error))
        except InstallError as error:
            self._log.error(f"{type(error).__name__}: {error}")
            outcome = JobOutcome.error(str(error))
        finally:
            self._unmount(job)

        if outcome.kind is OutcomeKind.MANUAL_FALLBACK:
            # The hidden read-only mount is gone; let the system mount it visibly.
            self.workspace.open(job.image_path)
        elif outcome.is_success:
            self._cleanup(job)
        return self._finish(job, outcome)

    def _mount(self, job: DiskImageJob) -> None:
        job.transition(JobState.MOUNTING)
        self._report("Mounting disk image...", PROGRESS_MOUNTING)
        mount = self._fallback.run(
            lambda: attach(job.image_path, self.runner), MOUNT_FALLBACK_MESSAGES
        )
        if mount.mount_point is not None:
            job.assign_mount_point(mount.mount_point)
        if not mount.ok:
            raise MountFailureError(job.image_path, mount.reason)

    def _install_from_volume(self, job: DiskImageJob) -> JobOutcome:
        job.transition(JobState.DISCOVERING)
        self._report("Scanning for apps...", PROGRESS_DISCOVERING)
        candidates = discover_bundles(job.mount_point)
        job.candidates = [candidate.path for candidate in candidates]
        bundle = select_bundle(candidates)
        if bundle is None:
            raise DiscoveryAmbiguousError(job.mount_point, len(candidates))

        job.selected_bundle = bundle.path
        destination = job.destination_path
        self._log.info(f"Selected {bundle.name} for installation")

        if bundle_exists(destination):
            job.transition(JobState.AWAITING_CONFIRMATION)
            decision = self.confirmation_gate.ask_replace_or_skip(bundle.name)
            if decision is ReplaceDecision.SKIP:
                self._log.info("Installation cancelled by user")
                return JobOutcome.success(destination, skipped=True)
            self._report("Removing old version...")
            remove_bundle(destination)

        job.transition(JobState.VALIDATING)
        validate_install(bundle.path, job.destination_dir, free_bytes=self.free_bytes)

        job.transition(JobState.COPYING)
        self._report("Installing app...", PROGRESS_COPYING)
        self._fallback.run(
            lambda: copy_bundle(bundle.path, destination, self.runner),
            COPY_FALLBACK_MESSAGES,
        )
        clear_quarantine(destination, self.runner)

        job.transition(JobState.POST_PROCESSING)
        self._report("Finishing up...", PROGRESS_POST_PROCESSING)
        if job.preferences.reveal_after_install:
            self.workspace.reveal(destination)
        return JobOutcome.success(destination)

    def _unmount(self, job: DiskImageJob) -> None:
        job.transition(JobState.UNMOUNTING)
        job.unmount_attempted = True
        self._report("Cleaning up...", PROGRESS_UNMOUNTING)
        success, forced = self._fallback.run(
            lambda: detach_with_retry(
                job.mount_point,
                self.runner,
                retry_delay=self.unmount_retry_delay,
                sleep=self.sleep,
            ),
            UNMOUNT_FALLBACK_MESSAGES,
        )
        if not success:
            self._log.warning(f"Volume {job.mount_point} could not be detached")
        elif forced:
            self._log.info(f"Volume {job.mount_point} detached with force")

    def _cleanup(self, job: DiskImageJob) -> None:
        job.transition(JobState.CLEANUP)
        self._report("Cleaning up...", PROGRESS_CLEANUP)
        if not job.preferences.auto_trash:
            return
        try:
            move_to_trash(job.image_path)
        except OSError as error:
            self._log.warning(f"Failed to move DMG to trash: {error}")

    def _finish(self, job: DiskImageJob, outcome: JobOutcome) -> JobOutcome:
        job.finish(outcome)
        if outcome.kind is OutcomeKind.SUCCESS and not outcome.skipped:
            self._report("Installation complete!", PROGRESS_COMPLETE)
            self.sleep(self.completion_hold)
        elif outcome.kind is OutcomeKind.ERROR:
            self._report(f"Error: {outcome.message}")
            self.sleep(self.error_hold)
        self._reporter.hide()
        return outcome

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def _report(self, message: str, progress: float | None = None) -> None:
        if progress is not None:
            self._progress = max(self._progress, progress)
        self._log.debug(message)
        self._reporter.update(message, self._progress)

    def _still_working(self, message: str) -> None:
        self._reporter.update(message, self._progress)

    def _announce(self, job: DiskImageJob, outcome: JobOutcome) -> None:
        if job.preferences.feedback_mode is not FeedbackMode.NOTIFICATION:
            return
        if self.notifier is None:
            return
        app_name = job.selected_bundle.stem if job.selected_bundle else job.image_name
        if outcome.kind is OutcomeKind.SUCCESS and outcome.skipped:
            self.notifier.notify("Installation Skipped", f"{app_name} is already installed")
        elif outcome.kind is OutcomeKind.SUCCESS:
            self.notifier.notify("Installation Complete", f"{app_name} was installed to Applications")
        elif outcome.kind is OutcomeKind.MANUAL_FALLBACK:
            self.notifier.notify(
                "Manual Installation Required", f"Opened {job.image_name} for manual installation"
            )
        else:
            self.notifier.notify("Installation Failed", outcome.message)
