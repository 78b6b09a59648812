"""
Value types shared by listing, planning and execution
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional


@dataclass(frozen=True)
class Document:
    """
    One node of a file tree, local or remote.

    ``locator`` is whatever the local storage needs to open the file again
    (a Path for the filesystem backend); remote documents carry None. It does
    not take part in equality or hashing.
    """

    name: str
    is_dir: bool
    children: tuple["Document", ...] = ()
    locator: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))


class SyncAction(str, Enum):
    IGNORE = "ignore"  # already present on the remote
    PUSH = "push"      # missing on the remote, create / upload
    SKIP = "skip"      # deselected by the user for this session


@dataclass(frozen=True)
class ProgressState:
    """Latest status of a long-running job; fraction None means indeterminate."""

    fraction: Optional[float] = None
    message: Optional[str] = None


def join_path(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


@dataclass(frozen=True)
class SyncPlan:
    """
    Local root documents plus the action chosen for every sync-relevant one.

    Actions are keyed by the document's path from the local root
    ("tasks/dir2/task2.tsk"), so identical leaves in different directories
    stay distinct. Documents without an entry are neither shown nor touched.
    """

    local_files: tuple[Document, ...]
    actions: Mapping[str, SyncAction]

    def __post_init__(self):
        object.__setattr__(self, "local_files", tuple(self.local_files))
        object.__setattr__(self, "actions", MappingProxyType(dict(self.actions)))

    def action_for(self, path: str) -> Optional[SyncAction]:
        return self.actions.get(path)

    def with_action(self, path: str, action: SyncAction) -> "SyncPlan":
        """Return a copy with one entry replaced; every other entry is kept as is."""
        if path not in self.actions:
            raise KeyError(f"{path!r} is not part of the plan")
        updated = dict(self.actions)
        updated[path] = action
        return replace(self, actions=updated)

    def iter_entries(self) -> Iterator[tuple[str, Document, SyncAction]]:
        """Yield (path, document, action) for planned documents, depth-first in tree order."""

        def _walk(docs, parent):
            for doc in docs:
                path = join_path(parent, doc.name)
                action = self.actions.get(path)
                if action is None:
                    continue
                yield path, doc, action
                if doc.is_dir:
                    yield from _walk(doc.children, path)

        yield from _walk(self.local_files, "")

    def count(self, action: Optional[SyncAction] = None, *, files_only: bool = True) -> int:
        """Number of planned entries, optionally restricted to one action."""
        return sum(
            1 for _, doc, act in self.iter_entries()
            if (not files_only or not doc.is_dir) and (action is None or act == action)
        )
