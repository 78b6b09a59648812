"""
Sync planner - decides which local documents must be pushed to the device
"""
from typing import Sequence

from .. import config as _cfg
from ..core.models import Document, SyncAction, SyncPlan, join_path
from ..utils.file_utils import has_synced_extension
from ..utils.logging import log, vlog


def _compare(local: Sequence[Document], remote: Sequence[Document],
             parent: str) -> dict[str, SyncAction]:
    """
    Actions for *local* (one directory level) and everything below it.

    Children are decided first so a directory is only relevant when something
    beneath it already is.
    """
    remote_by_name = {doc.name: doc for doc in remote}
    actions: dict[str, SyncAction] = {}

    for doc in local:
        if not doc.is_dir or not doc.children:
            continue
        match = remote_by_name.get(doc.name)
        actions.update(_compare(doc.children, match.children if match else (),
                                join_path(parent, doc.name)))

    for doc in local:
        path = join_path(parent, doc.name)
        if doc.is_dir:
            relevant = any(join_path(path, child.name) in actions for child in doc.children)
        else:
            relevant = has_synced_extension(doc.name, _cfg.SYNCED_EXTENSIONS)
        if not relevant:
            continue
        actions[path] = SyncAction.IGNORE if doc.name in remote_by_name else SyncAction.PUSH
        vlog(f"  [{actions[path].name}] {path}")

    return actions


def make_plan(local: Sequence[Document], remote: Sequence[Document]) -> SyncPlan:
    """
    Diff the local tree against the remote one.

    Every sync-relevant local document (a file with a synced extension, or a
    directory containing one at any depth) gets IGNORE if the remote has an
    entry of the same name at the same place, PUSH otherwise. Everything else
    gets no entry.
    """
    plan = SyncPlan(tuple(local), _compare(local, remote, ""))
    log(f"[plan] push={plan.count(SyncAction.PUSH)}  "
        f"ignore={plan.count(SyncAction.IGNORE)}  (files={plan.count()})")
    return plan
