"""
Plan execution - creates remote directories and uploads files
"""
from enum import Enum
from typing import Any, BinaryIO, Callable, Optional, Sequence

from .. import config as _cfg
from ..core.models import Document, ProgressState, SyncAction, SyncPlan, join_path
from ..core.session import TransferSession, is_dir
from ..errors import Cancelled, TransferError
from ..utils.logging import log, vlog, warn

# locator -> (stream, length)
OpenRead = Callable[[Any], tuple[BinaryIO, int]]
ProgressCallback = Callable[[ProgressState], None]


class ExecutionOutcome(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class _Run:
    """Bookkeeping for one execution: fixed denominator, completed count."""

    def __init__(self, session: TransferSession, plan: SyncPlan,
                 open_read: OpenRead, on_progress: Optional[ProgressCallback]):
        self.session = session
        self.plan = plan
        self.open_read = open_read
        self.on_progress = on_progress
        self.total = plan.count()
        self.completed = 0

    def report(self, fraction: float, message: str):
        if self.on_progress and self.total:
            self.on_progress(ProgressState(min(fraction, 1.0), message))

    def walk(self, docs: Sequence[Document], parent: str):
        for doc in docs:
            path = join_path(parent, doc.name)
            action = self.plan.action_for(path)
            if action is None:
                continue
            if doc.is_dir:
                self.directory(doc, path, action)
            elif action == SyncAction.PUSH:
                self.push_file(doc, path)
            else:
                vlog(f"  [{action.name}] {path}")

    def directory(self, doc: Document, path: str, action: SyncAction):
        # Entered whatever its action: an existing directory may still
        # contain files to push.
        if action == SyncAction.PUSH:
            try:
                self.session.make_directory(doc.name)
                log(f"  [MKDIR ✓] {path}")
            except TransferError as exc:
                if not self.exists_as_directory(doc.name):
                    raise
                vlog(f"  [MKDIR] {path} already exists ({exc.cause})")
        self.session.enter(doc.name)
        try:
            self.walk(doc.children, path)
        finally:
            self.session.leave()

    def exists_as_directory(self, name: str) -> bool:
        try:
            return is_dir(self.session.stat(name))
        except TransferError:
            return False

    def push_file(self, doc: Document, path: str):
        try:
            stream, length = self.open_read(doc.locator)
        except OSError as exc:
            raise TransferError(f"cannot read local {path}: {exc}", cause=exc) from exc

        def on_chunk(sent: int) -> bool:
            part = sent / length if length else 1.0
            self.report((self.completed + part) / self.total, doc.name)
            return not (self.session.cancel is not None and self.session.cancel.is_set())

        log(f"  [PUSH] {path} ({length} bytes)")
        with stream:
            finished = self.session.upload(stream, _cfg.STAGING_NAME, on_chunk)
        if finished:
            self.session.rename(_cfg.STAGING_NAME, doc.name)
            log(f"  [PUSH ✓] {path}")
        else:
            warn(f"  [PUSH ✗] {path} cancelled, not renamed")
        self.completed += 1
        self.report(self.completed / self.total, doc.name)
        if not finished:
            raise Cancelled()


def execute_plan(session: TransferSession, plan: SyncPlan, open_read: OpenRead,
                 on_progress: Optional[ProgressCallback] = None) -> ExecutionOutcome:
    """
    Apply *plan* through an open *session*.

    Directories marked PUSH are created, every directory in the plan is
    walked, and files marked PUSH are uploaded to STAGING_NAME then renamed
    into place. Returns CANCELLED when a cancellation was observed; transfer
    failures raise TransferError and leave already renamed files committed.
    """
    run = _Run(session, plan, open_read, on_progress)
    log(f"[push] {plan.count(SyncAction.PUSH)} of {run.total} file(s) to push …")
    try:
        session.enter(_cfg.REMOTE_ROOT)
        try:
            run.walk(plan.local_files, "")
        finally:
            session.leave()
    except Cancelled:
        warn(f"[push] cancelled after {run.completed}/{run.total}")
        return ExecutionOutcome.CANCELLED
    log(f"[push] done {run.completed}/{run.total} ✓")
    return ExecutionOutcome.COMPLETED
