"""
Single background job slot with cooperative cancellation
"""
import threading
from typing import Callable, Optional

from ..utils.logging import vlog, warn

JobTarget = Callable[[threading.Event], None]


class JobSlot:
    """
    Runs at most one job at a time on a daemon thread.

    Starting a job first cancels the running one and waits for it to
    finish, so two jobs never hold a session to the device at once. Jobs
    receive their cancel event and are expected to check it at their
    checkpoints; nothing is interrupted mid-call.
    """

    def __init__(self):
        self._thread: Optional[threading.Thread] = None
        self._cancel: Optional[threading.Event] = None
        self.last_error: Optional[BaseException] = None

    @property
    def busy(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, name: str, target: JobTarget) -> threading.Thread:
        self.stop()
        cancel = threading.Event()
        thread = threading.Thread(target=self._run, args=(name, target, cancel),
                                  name=f"xcsync-{name}", daemon=True)
        self._thread, self._cancel = thread, cancel
        self.last_error = None
        vlog(f"[job] starting {name}")
        thread.start()
        return thread

    def _run(self, name: str, target: JobTarget, cancel: threading.Event):
        try:
            target(cancel)
        except Exception as exc:
            self.last_error = exc
            warn(f"job {name} failed: {exc}")
        finally:
            vlog(f"[job] {name} finished")

    def cancel(self):
        """Request cancellation of the running job, if any. Does not wait."""
        if self._cancel is not None:
            self._cancel.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the running job; True once no job is running."""
        thread = self._thread
        if thread is None:
            return True
        if thread is threading.current_thread():
            raise RuntimeError("a job cannot wait for itself")
        thread.join(timeout)
        return not thread.is_alive()

    def stop(self):
        """Cancel the running job and wait until it has finished."""
        if self.busy:
            vlog(f"[job] cancelling {self._thread.name} before starting a new job")
            self.cancel()
            self.wait()
