"""Run-level error and warning lists observed by the UI."""
import threading
from typing import Callable


class MessageBoard:
    """Errors are append-only in order; warnings are unique by text."""

    def __init__(self):
        self._errors: list[str] = []
        self._warnings: list[str] = []
        self._lock = threading.Lock()

    @property
    def errors(self) -> list[str]:
        with self._lock:
            return list(self._errors)

    @property
    def warnings(self) -> list[str]:
        with self._lock:
            return list(self._warnings)

    def add_error(self, message: str) -> None:
        with self._lock:
            self._errors.append(message)

    def add_warning(self, message: str) -> None:
        with self._lock:
            if message not in self._warnings:
                self._warnings.append(message)

    def remove_warnings(self, predicate: Callable[[str], bool]) -> None:
        with self._lock:
            self._warnings = [w for w in self._warnings if not predicate(w)]

    def dismiss_warning(self, index: int) -> str:
        if index < 0:
            raise IndexError(index)
        with self._lock:
            return self._warnings.pop(index)

    def dismiss_error(self, index: int) -> str:
        if index < 0:
            raise IndexError(index)
        with self._lock:
            return self._errors.pop(index)

    def clear_errors(self) -> None:
        with self._lock:
            self._errors.clear()

    def clear_warnings(self) -> None:
        with self._lock:
            self._warnings.clear()
