"""Output naming, collision, permission and disk-space checks."""
import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Iterable, Optional

from smolr.config import DISK_CHECK_PATH, LOW_DISK_THRESHOLD_BYTES
from smolr.conversion.errors import PermissionDeniedError
from smolr.conversion.messages import MessageBoard
from smolr.conversion.models import (
    OVERWRITE_WARNING,
    ConversionSettings,
    ConversionStatus,
    FileItem,
    StatusKind,
)

logger = logging.getLogger("smolr.validation")

OVERWRITE_RUN_WARNING = "Some files will be overwritten"
LOW_DISK_WARNING_PREFIX = "Low disk space"


def build_output_path(source: Path, suffix: str, target_extension: str) -> Path:
    """<dir>/<stem><suffix>.<ext>. Deterministic, touches nothing on disk."""
    source = Path(source)
    return source.parent / f"{source.stem}{suffix}.{target_extension.lstrip('.')}"


def is_overwrite_warning(message: str) -> bool:
    return "will be overwritten" in message


class ValidationChecker:
    def __init__(
        self,
        messages: MessageBoard,
        on_status: Optional[Callable[[FileItem, ConversionStatus], None]] = None,
        disk_check_path: Path = DISK_CHECK_PATH,
        low_disk_threshold: int = LOW_DISK_THRESHOLD_BYTES,
    ):
        self.messages = messages
        self.on_status = on_status
        self.disk_check_path = Path(disk_check_path)
        self.low_disk_threshold = low_disk_threshold

    def _set_status(self, item: FileItem, status: ConversionStatus) -> None:
        if self.on_status is not None:
            self.on_status(item, status)
        else:
            item.status = status

    @staticmethod
    def output_path(item: FileItem, settings: ConversionSettings) -> Path:
        return build_output_path(item.path, settings.file_suffix, settings.target_extension(item.path))

    def check_output_conflicts(
        self,
        items: Iterable[FileItem],
        processed: set[str],
        settings: ConversionSettings,
    ) -> int:
        """Flag items whose output already exists; returns how many conflict."""
        conflicts = 0
        for item in items:
            if not item.is_image or item.id in processed:
                continue
            if item.status.kind == StatusKind.CONVERTING:
                continue
            if self.output_path(item, settings).exists():
                conflicts += 1
                if item.status != ConversionStatus.warning(OVERWRITE_WARNING):
                    self._set_status(item, ConversionStatus.warning(OVERWRITE_WARNING))
            elif item.status.kind == StatusKind.WARNING:
                self._set_status(item, ConversionStatus.not_started())

        self.messages.remove_warnings(is_overwrite_warning)
        if conflicts:
            self.messages.add_warning(OVERWRITE_RUN_WARNING)
        return conflicts

    @staticmethod
    def check_permissions(source: Path, output: Path) -> None:
        if not os.access(source, os.R_OK):
            raise PermissionDeniedError(f"Cannot read {Path(source).name} - permission denied")
        if not os.access(Path(output).parent, os.W_OK):
            raise PermissionDeniedError("Cannot write to output directory - permission denied")

    def check_disk_space(self) -> Optional[int]:
        """Warn when free space is under the threshold. Returns free bytes, if known."""
        try:
            free = shutil.disk_usage(self.disk_check_path).free
        except OSError as e:
            logger.warning("Could not read free space for %s: %s", self.disk_check_path, e)
            return None
        if free < self.low_disk_threshold:
            self.messages.remove_warnings(lambda w: w.startswith(LOW_DISK_WARNING_PREFIX))
            self.messages.add_warning(f"{LOW_DISK_WARNING_PREFIX} ({free / 1_000_000_000:.1f}GB free)")
        return free
