"""Replace-or-skip decisions for apps that are already installed.

The orchestrator calls ``ask_replace_or_skip`` and blocks until it returns;
the job stays parked in the awaiting-confirmation state meanwhile.
"""

from __future__ import annotations

import queue
import sys
from typing import Callable, TextIO

from easydmg.domain import ReplaceDecision
from easydmg.logging import get_logger


log = get_logger(source="confirm", tags=["install", "confirm"])


class ConfirmationGate:
    """Asks whether an existing installation should be replaced."""

    def ask_replace_or_skip(self, bundle_name: str) -> ReplaceDecision:
        raise NotImplementedError


class FixedConfirmationGate(ConfirmationGate):
    """Always gives the same answer (``--replace`` / ``--skip``)."""

    def __init__(self, decision: ReplaceDecision):
        self.decision = decision

    def ask_replace_or_skip(self, bundle_name: str) -> ReplaceDecision:
        log.info(f"{bundle_name} already exists, answering {self.decision.value}")
        return self.decision


class PromptConfirmationGate(ConfirmationGate):
    """Asks on the terminal. End of input counts as skip."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        stream: TextIO | None = None,
    ):
        self.input_func = input_func
        self.stream = stream or sys.stderr

    def ask_replace_or_skip(self, bundle_name: str) -> ReplaceDecision:
        self.stream.write(
            f"\n{bundle_name} already exists in Applications.\n"
            "What would you like to do?\n"
        )
        self.stream.flush()
        while True:
            try:
                answer = self.input_func("[R]eplace / [S]kip: ").strip().lower()
            except EOFError:
                return ReplaceDecision.SKIP
            if answer in ("r", "replace"):
                return ReplaceDecision.REPLACE
            if answer in ("s", "skip"):
                return ReplaceDecision.SKIP


class QueuedConfirmationGate(ConfirmationGate):
    """Hands the question to another thread and waits for its answer.

    ``requests`` receives the bundle name; ``answer()`` resumes the job.
    """

    def __init__(self):
        self.requests: queue.Queue[str] = queue.Queue()
        self._decisions: queue.Queue[ReplaceDecision] = queue.Queue()

    def ask_replace_or_skip(self, bundle_name: str) -> ReplaceDecision:
        self.requests.put(bundle_name)
        return self._decisions.get()

    def wait_for_request(self, timeout: float | None = None) -> str:
        """Block until a job asks; raises ``queue.Empty`` on timeout."""
        return self.requests.get(timeout=timeout)

    def answer(self, decision: ReplaceDecision) -> None:
        self._decisions.put(decision)
