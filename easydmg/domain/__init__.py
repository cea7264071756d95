"""Domain models for disk image installs.

This package contains the type-safe objects shared by the orchestrator
and the storage helpers.
"""

from __future__ import annotations

from .models import (
    BundleCandidate,
    CommandResult,
    DiskImageJob,
    FeedbackMode,
    JobOutcome,
    JobState,
    MountResult,
    OutcomeKind,
    Preferences,
    ReplaceDecision,
)


__all__ = [
    "BundleCandidate",
    "CommandResult",
    "DiskImageJob",
    "FeedbackMode",
    "JobOutcome",
    "JobState",
    "MountResult",
    "OutcomeKind",
    "Preferences",
    "ReplaceDecision",
]
