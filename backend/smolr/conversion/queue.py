"""Insertion-ordered file queue shared between the application and a run."""
import logging
import os
import threading
from pathlib import Path
from typing import Iterable, Optional

from smolr.conversion.models import FileItem, is_image_file

logger = logging.getLogger("smolr.queue")


class FileQueue:
    """Items by id plus display order. Safe to mutate while a run iterates."""

    def __init__(self):
        self._items: dict[str, FileItem] = {}
        self._order: list[str] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def __contains__(self, item_id: object) -> bool:
        if isinstance(item_id, FileItem):
            item_id = item_id.id
        with self._lock:
            return item_id in self._items

    def get(self, item_id: str) -> Optional[FileItem]:
        with self._lock:
            return self._items.get(item_id)

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._order)

    def items(self) -> list[FileItem]:
        with self._lock:
            return [self._items[i] for i in self._order]

    def append(self, item: FileItem) -> FileItem:
        with self._lock:
            if item.id not in self._items:
                self._items[item.id] = item
                self._order.append(item.id)
        return item

    def add_path(self, path: Path) -> list[FileItem]:
        """Queue a file, or every image under a directory. Missing paths are ignored."""
        path = Path(path).expanduser()
        if path.is_dir():
            return [self.append(FileItem(p)) for p in _enumerate_images(path)]
        if path.is_file():
            return [self.append(FileItem(path))]
        logger.warning("Ignoring missing path: %s", path)
        return []

    def add_paths(self, paths: Iterable[Path]) -> list[FileItem]:
        added: list[FileItem] = []
        for p in paths:
            added.extend(self.add_path(p))
        return added

    def remove(self, item_id: str) -> Optional[FileItem]:
        with self._lock:
            item = self._items.pop(item_id, None)
            if item is not None:
                self._order.remove(item_id)
            return item

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._order.clear()


def _enumerate_images(directory: Path) -> list[Path]:
    """Regular image files below directory, skipping hidden files and folders."""
    found: list[Path] = []
    for root, dirs, files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for name in sorted(files):
            if name.startswith("."):
                continue
            p = Path(root) / name
            if p.is_file() and is_image_file(p):
                found.append(p)
    return found
