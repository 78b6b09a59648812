"""
Local storage access (enumeration and reading of the local data tree)
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Optional, Protocol


@dataclass(frozen=True)
class LocalEntry:
    """One child as reported by a LocalStorage backend."""

    id: Any
    name: str
    is_dir: bool


class LocalStorage(Protocol):
    """
    What the listing and the executor need from local storage.

    *directory_id* None means the root itself; entry ids double as locators.
    """

    def list_children(self, root: Any, directory_id: Any = None) -> list[LocalEntry]:
        ...

    def open_read(self, locator: Any) -> tuple[BinaryIO, int]:
        """Return an open binary stream and its length in bytes."""
        ...


class FileSystemStorage:
    """LocalStorage over a plain directory; ids and locators are Paths."""

    def list_children(self, root: Path, directory_id: Optional[Path] = None) -> list[LocalEntry]:
        directory = Path(directory_id) if directory_id is not None else Path(root)
        return [
            LocalEntry(id=p, name=p.name, is_dir=p.is_dir())
            for p in sorted(directory.iterdir(), key=lambda p: p.name)
        ]

    def open_read(self, locator: Path) -> tuple[BinaryIO, int]:
        path = Path(locator)
        f = path.open("rb")
        return f, path.stat().st_size


def has_synced_extension(name: str, extensions) -> bool:
    """True if *name* ends with '.' + one of *extensions*, ignoring case."""
    lower = name.lower()
    return any(lower.endswith("." + ext.lower()) for ext in extensions)
