"""Sequential conversion runs over the shared file queue, with cancellation and statistics."""
import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional

from smolr.conversion.errors import ConversionError, PermissionDeniedError, ToolMissingError
from smolr.conversion.messages import MessageBoard
from smolr.conversion.models import ConversionSettings, ConversionStatus, FileItem
from smolr.conversion.pipeline import EncodingPipeline
from smolr.conversion.queue import FileQueue
from smolr.conversion.stats import RunStatistics
from smolr.conversion.validation import ValidationChecker, is_overwrite_warning

logger = logging.getLogger("smolr.service")

StatusListener = Callable[[FileItem, ConversionStatus], None]


@dataclass
class ItemResult:
    item_id: str
    filename: str
    output_path: str
    status: str  # "done" | "failed"
    input_bytes: Optional[int] = None
    output_bytes: Optional[int] = None


@dataclass
class RunSummary:
    run_id: str
    status: str  # "completed" | "cancelled"
    stats: RunStatistics
    started_at: str
    completed_at: str
    duration_seconds: float
    items: list[ItemResult] = field(default_factory=list)


def _file_size(path: Path) -> Optional[int]:
    try:
        return path.stat().st_size
    except OSError:
        return None


class ConversionService:
    """Owns item status transitions, the processed set and run statistics.

    The queue belongs to the caller, who may remove items at any time. A run
    converts one item at a time and only ever waits on the external tools.
    """

    def __init__(
        self,
        queue: Optional[FileQueue] = None,
        pipeline: Optional[EncodingPipeline] = None,
        settings: Optional[ConversionSettings] = None,
        messages: Optional[MessageBoard] = None,
        validator: Optional[ValidationChecker] = None,
    ):
        self.queue = queue if queue is not None else FileQueue()
        self.pipeline = pipeline or EncodingPipeline()
        self.settings = settings or ConversionSettings()
        self.messages = messages or MessageBoard()
        self.validator = validator or ValidationChecker(self.messages)
        self.validator.on_status = self._set_status
        self.stats = RunStatistics()
        self.processed: set[str] = set()
        self._status_listeners: list[StatusListener] = []
        self._run_listeners: list[Callable[[RunSummary], None]] = []
        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="smolr-run")
        self._future: Optional[Future] = None
        self._running_inline = False
        logger.info("ConversionService initialized")

    # Observers

    def add_status_listener(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def add_run_listener(self, listener: Callable[[RunSummary], None]) -> None:
        if listener not in self._run_listeners:
            self._run_listeners.append(listener)

    def _set_status(self, item: FileItem, status: ConversionStatus) -> None:
        item.status = status
        for listener in self._status_listeners:
            try:
                listener(item, status)
            except Exception:
                logger.exception("Status listener failed for %s", item.name)

    # Queue and settings

    def add_paths(self, paths: Iterable[Path]) -> list[FileItem]:
        added = self.queue.add_paths(paths)
        self.check_output_conflicts()
        self.validator.check_disk_space()
        return added

    def remove(self, item_id: str) -> Optional[FileItem]:
        item = self.queue.remove(item_id)
        if item is not None:
            self.check_output_conflicts()
        return item

    def clear(self) -> None:
        """Drop every item and reset counters. Cancels a running run."""
        self.cancel()
        self.queue.clear()
        self.processed.clear()
        self.stats.reset()
        self.messages.clear_errors()
        self.messages.remove_warnings(is_overwrite_warning)

    def update_settings(self, **changes) -> ConversionSettings:
        """Replace settings (validated) and re-check collisions against the new names."""
        self.settings = replace(self.settings, **changes)
        self.check_output_conflicts()
        return self.settings

    def check_output_conflicts(self) -> int:
        return self.validator.check_output_conflicts(self.queue.items(), self.processed, self.settings)

    def is_eligible(self, item: FileItem) -> bool:
        return item.is_image and item.id not in self.processed

    # Run control

    @property
    def is_running(self) -> bool:
        if self._running_inline:
            return True
        return self._future is not None and not self._future.done()

    def start(self) -> Future:
        """Launch a run on the background worker."""
        with self._lock:
            if self.is_running:
                raise RuntimeError("A conversion run is already in progress")
            self._cancel.clear()
            self._future = self._executor.submit(self._run)
            return self._future

    def run(self) -> RunSummary:
        """Perform one run in the calling thread."""
        with self._lock:
            if self.is_running:
                raise RuntimeError("A conversion run is already in progress")
            self._cancel.clear()
            self._running_inline = True
        try:
            return self._run()
        finally:
            self._running_inline = False

    def cancel(self) -> None:
        """Stop before the next item. A tool already running is left to finish."""
        self._cancel.set()

    def wait(self, timeout: Optional[float] = None) -> Optional[RunSummary]:
        if self._future is None:
            return None
        return self._future.result(timeout=timeout)

    def shutdown(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=True)

    def _run(self) -> RunSummary:
        settings = self.settings
        run_id = str(uuid.uuid4())
        started_at = datetime.now(timezone.utc)
        t0 = time.monotonic()

        order = self.queue.ids()
        eligible = [item for item in self.queue.items() if self.is_eligible(item)]
        self.stats.reset(len(eligible))
        for item in eligible:
            self._set_status(item, ConversionStatus.waiting())
        self.validator.check_disk_space()
        logger.info(
            "Run %s started: %s files -> %s (quality=%s, profile=%s)",
            run_id[:8], len(eligible), settings.output_format, settings.quality, settings.profile.value,
        )

        results: list[ItemResult] = []
        cancelled = False
        try:
            for item_id in order:
                if self._cancel.is_set():
                    cancelled = True
                    logger.info("Run %s cancelled", run_id[:8])
                    break
                item = self.queue.get(item_id)
                if item is None:
                    continue
                if not self.is_eligible(item):
                    continue
                result = self._convert_item(item, settings)
                if result is not None:
                    results.append(result)
        finally:
            self.messages.remove_warnings(is_overwrite_warning)

        summary = RunSummary(
            run_id=run_id,
            status="cancelled" if cancelled else "completed",
            stats=replace(self.stats),
            started_at=started_at.isoformat(),
            completed_at=datetime.now(timezone.utc).isoformat(),
            duration_seconds=round(time.monotonic() - t0, 3),
            items=results,
        )
        logger.info(
            "Run %s %s: %s/%s converted, %s bytes saved",
            run_id[:8], summary.status, self.stats.files_converted,
            self.stats.total_files_to_convert, self.stats.total_bytes_saved,
        )
        for listener in self._run_listeners:
            try:
                listener(summary)
            except Exception:
                logger.exception("Run listener failed for run %s", run_id)
        return summary

    def _convert_item(self, item: FileItem, settings: ConversionSettings) -> Optional[ItemResult]:
        self._set_status(item, ConversionStatus.converting())
        output = self.validator.output_path(item, settings)
        original_size = _file_size(item.path)

        error: Optional[str] = None
        try:
            self.validator.check_permissions(item.path, output)
            self.pipeline.convert(
                item.path,
                output,
                settings.target_format(item.path),
                settings.quality,
                settings.profile,
            )
        except (PermissionDeniedError, ToolMissingError) as e:
            error = str(e)
        except ConversionError as e:
            logger.warning("Conversion failed for %s: %s", item.name, e)
            error = f"Failed to convert {item.name}"
        except Exception as e:
            logger.exception("Conversion failed for %s: %s", item.path, e)
            error = f"Failed to convert {item.name}"

        # The owner may have removed the item while the tool was running
        if item.id not in self.queue:
            logger.info("%s was removed during conversion, discarding result", item.name)
            return None

        if error is None:
            self.processed.add(item.id)
            self._set_status(item, ConversionStatus.done())
            output_size = _file_size(output)
            self.stats.record_success(original_size, output_size)
            logger.info("Converted %s -> %s", item.name, output.name)
            return ItemResult(item.id, item.name, str(output), "done", original_size, output_size)

        self._set_status(item, ConversionStatus.failed())
        self.messages.add_error(error)
        return ItemResult(item.id, item.name, str(output), "failed", original_size, None)

    def snapshot(self) -> dict:
        """Polling view for observers."""
        return {
            "running": self.is_running,
            "settings": {
                "output_format": self.settings.output_format,
                "quality": self.settings.quality,
                "profile": self.settings.profile.value,
                "file_suffix": self.settings.file_suffix,
            },
            "items": [self.describe(item) for item in self.queue.items()],
            "stats": self.stats.to_dict(),
            "errors": self.messages.errors,
            "warnings": self.messages.warnings,
        }

    def describe(self, item: FileItem) -> dict:
        return {
            "id": item.id,
            "path": str(item.path),
            "name": item.name,
            "is_image": item.is_image,
            "processed": item.id in self.processed,
            "status": item.status.kind.value,
            "status_text": item.status.description,
            "output_path": str(self.validator.output_path(item, self.settings)) if item.is_image else None,
        }


# Singleton
_conversion_service: Optional[ConversionService] = None


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service
