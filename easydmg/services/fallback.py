"""Progressive "still working" messages for long-running steps.

A step (mount, copy, unmount) runs on a worker thread while the calling
thread waits on its completion event with a deadline per message. Whichever
comes first wins: a timed-out wait emits the next message, a completed
operation ends the wait and no further message is emitted.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Sequence, TypeVar

from easydmg.logging import get_logger


log = get_logger(source="feedback", tags=["feedback", "timer"])

T = TypeVar("T")

FALLBACK_DELAYS = (4.0, 8.0, 12.0)

MOUNT_FALLBACK_MESSAGES = (
    "Still mounting disk image...",
    "Verifying disk image, this can take a while...",
    "Large disk images take longer to mount...",
)
COPY_FALLBACK_MESSAGES = (
    "Still installing...",
    "Copying a large app, please wait...",
    "Almost there...",
)
UNMOUNT_FALLBACK_MESSAGES = (
    "Still ejecting disk image...",
    "Waiting for the volume to be released...",
    "Still ejecting...",
)


class FallbackMessenger:
    """Runs blocking operations while surfacing delayed progress messages.

    Args:
        emit: Called with each message that comes due before the operation ends
        delays: Seconds after start at which successive messages come due
    """

    def __init__(
        self,
        emit: Callable[[str], None],
        delays: Sequence[float] = FALLBACK_DELAYS,
    ):
        self.emit = emit
        self.delays = tuple(delays)

    def run(self, operation: Callable[[], T], messages: Sequence[str]) -> T:
        """Run ``operation`` off the calling thread and return its result.

        Exceptions raised by the operation are re-raised here. By the time this
        returns, every pending message has been cancelled.
        """
        done = threading.Event()
        # Held while emitting so completion cannot interleave with a message.
        emit_lock = threading.Lock()
        result: list = [None]
        error: list = [None]

        def worker():
            try:
                result[0] = operation()
            except BaseException as exc:
                error[0] = exc
            finally:
                with emit_lock:
                    done.set()

        start = time.monotonic()
        thread = threading.Thread(target=worker, name="fallback-step", daemon=True)
        thread.start()

        for delay, message in zip(self.delays, messages):
            remaining = delay - (time.monotonic() - start)
            if done.wait(timeout=max(0.0, remaining)):
                break
            with emit_lock:
                if done.is_set():
                    break
                log.trace(f"Step still running after {delay}s: {message}")
                self.emit(message)

        done.wait()
        thread.join()
        if error[0] is not None:
            raise error[0]
        return result[0]
