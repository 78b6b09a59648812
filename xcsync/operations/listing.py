"""
Tree enumeration (local storage and remote device)
"""
from typing import Any, Optional

from .. import config as _cfg
from ..core.models import Document
from ..core.session import TransferSession, is_dir
from ..errors import Cancelled, TransferError
from ..utils.file_utils import LocalStorage
from ..utils.logging import log, vlog, warn


def list_local_tree(storage: LocalStorage, root: Any) -> Optional[tuple[Document, ...]]:
    """
    Enumerate *root* through *storage*.

    Returns None if the root itself cannot be listed. A subdirectory that
    fails to list is kept with no children.
    """

    def _list(directory_id) -> tuple[Document, ...]:
        docs = []
        for entry in storage.list_children(root, directory_id):
            children: tuple[Document, ...] = ()
            if entry.is_dir:
                try:
                    children = _list(entry.id)
                except OSError as exc:
                    warn(f"[scan] cannot list local directory {entry.name}: {exc}")
            docs.append(Document(entry.name, entry.is_dir, children, locator=entry.id))
        return tuple(docs)

    log(f"[scan] Scanning local files in {root} …")
    try:
        tree = _list(None)
    except OSError as exc:
        warn(f"[scan] cannot list local root {root}: {exc}")
        return None
    vlog(f"[scan] {len(tree)} local root entr{'y' if len(tree) == 1 else 'ies'}")
    return tree


def list_remote_tree(session: TransferSession, root: Optional[str] = None) -> Optional[tuple[Document, ...]]:
    """
    Enumerate *root* (default REMOTE_ROOT) on the device, skipping dot-files.

    Each subdirectory is entered before its children are listed and left
    exactly once afterwards. Returns None on any listing failure; Cancelled
    propagates.
    """
    root = _cfg.REMOTE_ROOT if root is None else root

    def _list() -> tuple[Document, ...]:
        docs = []
        for entry in session.list("."):
            if entry.filename.startswith("."):
                continue
            children: tuple[Document, ...] = ()
            if is_dir(entry):
                session.enter(entry.filename)
                try:
                    children = _list()
                finally:
                    session.leave()
            docs.append(Document(entry.filename, is_dir(entry), children))
        return tuple(sorted(docs, key=lambda d: d.name))

    log(f"[scan] Scanning remote {session.host}:{root} …")
    try:
        session.enter(root)
        try:
            return _list()
        finally:
            session.leave()
    except Cancelled:
        raise
    except TransferError as exc:
        warn(f"[scan] remote listing failed: {exc}")
        return None
