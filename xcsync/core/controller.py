"""
Application state and orchestration - what a GUI shell binds to
"""
import ipaddress
import threading
from typing import Callable, Optional

from .. import config as _cfg
from ..errors import Cancelled, ConnectError, TransferError
from ..operations.discovery import discover
from ..operations.executor import ExecutionOutcome, execute_plan
from ..operations.listing import list_local_tree, list_remote_tree
from ..operations.planner import make_plan
from ..utils.file_utils import FileSystemStorage, LocalStorage
from ..utils.logging import log, warn
from .jobs import JobSlot
from .models import Document, ProgressState, SyncAction, SyncPlan
from .session import TransferSession


class SyncController:
    """
    Holds the local tree, the device address, the current plan, the last
    error and the progress of the running job.

    find_address(), refresh() and execute_plan() run as background jobs in a
    single slot; starting one cancels and waits for the previous one.
    *on_change* is called (from the job thread) whenever progress or state
    changes.
    """

    def __init__(self, local_root=None, address: Optional[str] = None,
                 storage: Optional[LocalStorage] = None,
                 on_change: Optional[Callable[[], None]] = None,
                 session_factory: Callable[..., TransferSession] = TransferSession):
        self.local_root = _cfg.LOCAL_ROOT if local_root is None else local_root
        self.address = address
        self.storage = storage or FileSystemStorage()
        self.local_files: Optional[tuple[Document, ...]] = None
        self.plan: Optional[SyncPlan] = None
        self.error_message: Optional[str] = "Not Connected"
        self.progress: Optional[ProgressState] = None
        self.last_outcome: Optional[ExecutionOutcome] = None
        self._on_change = on_change
        self._session_factory = session_factory
        self._jobs = JobSlot()

    # ── state ──────────────────────────────────────────────────────────────

    @property
    def job_in_progress(self) -> bool:
        return self.progress is not None

    @property
    def has_local_files(self) -> bool:
        return self.local_files is not None

    @property
    def can_execute_plan(self) -> bool:
        return self.plan is not None and not self.job_in_progress and self.address is not None

    def _changed(self):
        if self._on_change:
            self._on_change()

    def _set_progress(self, progress: Optional[ProgressState]):
        self.progress = progress
        self._changed()

    def update_plan(self, path: str, action: SyncAction):
        """User edit: set the action of one planned document."""
        if self.plan is None:
            return
        self.plan = self.plan.with_action(path, action)
        self._changed()

    # ── jobs ───────────────────────────────────────────────────────────────

    def _launch(self, name: str, work: Callable[[threading.Event], None]):
        self._jobs.stop()
        self._set_progress(ProgressState())

        def job(cancel: threading.Event):
            try:
                work(cancel)
            except Exception as exc:
                warn(f"[{name}] failed: {exc!r}")
                self.error_message = str(exc) or type(exc).__name__
                self._changed()
            finally:
                self._set_progress(None)

        self._jobs.start(name, job)

    def cancel_job(self):
        self._jobs.cancel()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._jobs.wait(timeout)

    def find_address(self, base_address: str):
        """
        Scan *base_address*'s subnet; on success the found address becomes current.

        Raises ValueError (on the calling thread) if *base_address* is not an
        IPv4 address.
        """
        ipaddress.IPv4Address(base_address)

        def work(cancel):
            found = discover(base_address, self._set_progress, cancel)
            if found is not None:
                self.address = found
                self.error_message = None
            elif not cancel.is_set():
                self.error_message = f"No device found on {base_address}/24"

        self._launch("discover", work)

    def refresh(self):
        """Re-list both trees and re-plan from scratch (user skips are dropped)."""

        def work(cancel):
            self._update_local_files()
            if self.local_files is None:
                self.error_message = "Unable to list local files"
                self.plan = None
                self._changed()
                return
            self._update_remote_files(cancel)

        self._launch("refresh", work)

    def execute_plan(self):
        """Apply the current plan, then re-list the device and re-plan."""
        if not self.can_execute_plan:
            warn("nothing to execute (no plan, no address or a job is running)")
            return
        plan, address = self.plan, self.address

        def work(cancel):
            self.last_outcome = None
            try:
                with self._session_factory(address, cancel=cancel) as session:
                    self.last_outcome = execute_plan(session, plan, self.storage.open_read,
                                                     self._set_progress)
                    if self.last_outcome == ExecutionOutcome.CANCELLED:
                        self.error_message = "Cancelled"
                        return
                    remote = list_remote_tree(session)
            except ConnectError as exc:
                self.error_message = str(exc)
                return
            except TransferError as exc:
                self.error_message = str(exc)
                self.plan = None
                return
            except Cancelled:
                self.last_outcome = ExecutionOutcome.CANCELLED
                self.error_message = "Cancelled"
                return
            self._replan(remote)

        self._launch("execute", work)

    # ── helpers ────────────────────────────────────────────────────────────

    def _update_local_files(self):
        self.local_files = list_local_tree(self.storage, self.local_root)
        self._changed()

    def _update_remote_files(self, cancel: threading.Event):
        if self.address is None:
            warn("cannot list remote files: no device address")
            self.error_message = "Not Connected"
            return
        try:
            with self._session_factory(self.address, cancel=cancel) as session:
                remote = list_remote_tree(session)
        except ConnectError as exc:
            # The previous plan stays as it was
            self.error_message = str(exc)
            self._changed()
            return
        except Cancelled:
            log("[refresh] cancelled")
            return
        self._replan(remote)

    def _replan(self, remote: Optional[tuple[Document, ...]]):
        if remote is None:
            self.error_message = "Unable to list remote files"
            self.plan = None
        else:
            self.error_message = None
            self.plan = make_plan(self.local_files, remote)
        self._changed()
