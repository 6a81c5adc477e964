"""Queue item, status and settings models."""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from smolr.config import (
    ALL_FORMATS,
    DEFAULT_FORMAT,
    DEFAULT_PROFILE,
    DEFAULT_QUALITY,
    FILE_SUFFIX,
    IMAGE_EXTENSIONS,
    MAX_QUALITY,
    MIN_QUALITY,
)

OVERWRITE_WARNING = "Existing output file will be overwritten"


class StatusKind(str, Enum):
    NOT_STARTED = "not_started"
    WAITING = "waiting"
    CONVERTING = "converting"
    DONE = "done"
    FAILED = "failed"
    WARNING = "warning"


@dataclass(frozen=True)
class ConversionStatus:
    """Tagged status value. Only WARNING carries a message."""

    kind: StatusKind
    message: Optional[str] = None

    @classmethod
    def not_started(cls) -> "ConversionStatus":
        return cls(StatusKind.NOT_STARTED)

    @classmethod
    def waiting(cls) -> "ConversionStatus":
        return cls(StatusKind.WAITING)

    @classmethod
    def converting(cls) -> "ConversionStatus":
        return cls(StatusKind.CONVERTING)

    @classmethod
    def done(cls) -> "ConversionStatus":
        return cls(StatusKind.DONE)

    @classmethod
    def failed(cls) -> "ConversionStatus":
        return cls(StatusKind.FAILED)

    @classmethod
    def warning(cls, message: str) -> "ConversionStatus":
        return cls(StatusKind.WARNING, message)

    @property
    def is_settled(self) -> bool:
        return self.kind not in (StatusKind.WAITING, StatusKind.CONVERTING)

    @property
    def description(self) -> str:
        if self.kind == StatusKind.WARNING:
            return self.message or ""
        return _DESCRIPTIONS[self.kind]


_DESCRIPTIONS = {
    StatusKind.NOT_STARTED: "",
    StatusKind.WAITING: "Waiting",
    StatusKind.CONVERTING: "Converting...",
    StatusKind.DONE: "Done",
    StatusKind.FAILED: "Failed",
}


class OptimizationProfile(str, Enum):
    FAST = "fast"
    BALANCED = "balanced"
    QUALITY = "quality"
    SIZE = "size"

    @property
    def display_name(self) -> str:
        return {
            OptimizationProfile.FAST: "Fast",
            OptimizationProfile.BALANCED: "Balanced",
            OptimizationProfile.QUALITY: "Quality (slower)",
            OptimizationProfile.SIZE: "Size (smallest)",
        }[self]

    @property
    def description(self) -> str:
        return {
            OptimizationProfile.FAST: "Quick processing with basic optimization",
            OptimizationProfile.BALANCED: "Good balance between speed and quality",
            OptimizationProfile.QUALITY: "Maximum quality. Takes significantly more time",
            OptimizationProfile.SIZE: "Smallest file size, more aggressive compression. Takes significantly more time",
        }[self]


class SupportedFormats:
    ALL = ALL_FORMATS
    DISPLAY_NAMES = {
        "original": "Original",
        "webp": "WebP",
        "avif": "AVIF",
        "jxl": "JXL",
        "png": "PNG",
        "jpeg": "JPEG",
        "gif": "GIF",
    }
    ALIASES = {"jpg": "jpeg"}

    @classmethod
    def normalize(cls, fmt: str) -> str:
        fmt = (fmt or "").strip().lower().lstrip(".")
        return cls.ALIASES.get(fmt, fmt)

    @classmethod
    def display_name(cls, fmt: str) -> str:
        return cls.DISPLAY_NAMES.get(cls.normalize(fmt), fmt.upper())

    @classmethod
    def sorted_formats(cls, formats: list[str]) -> list[str]:
        """Order formats like the picker does; unknown formats go last."""
        def rank(fmt: str) -> int:
            fmt = cls.normalize(fmt)
            return cls.ALL.index(fmt) if fmt in cls.ALL else len(cls.ALL)
        return sorted(formats, key=rank)


def is_image_file(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


class FileItem:
    """A queued source file. Identity is the id, never the object."""

    def __init__(self, path: Path, item_id: Optional[str] = None):
        self.id = item_id or str(uuid.uuid4())
        self.path = Path(path)
        self.status = ConversionStatus.not_started()

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_image(self) -> bool:
        return is_image_file(self.path)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FileItem) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"FileItem({self.name!r}, {self.status.kind.value})"


@dataclass
class ConversionSettings:
    output_format: str = DEFAULT_FORMAT
    quality: int = DEFAULT_QUALITY
    profile: OptimizationProfile = field(default_factory=lambda: OptimizationProfile(DEFAULT_PROFILE))
    file_suffix: str = FILE_SUFFIX

    def __post_init__(self):
        self.output_format = SupportedFormats.normalize(self.output_format)
        if self.output_format not in SupportedFormats.ALL:
            raise ValueError(f"Unknown output format: {self.output_format}")
        if not MIN_QUALITY <= int(self.quality) <= MAX_QUALITY:
            raise ValueError(f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}")
        self.quality = int(self.quality)
        self.profile = OptimizationProfile(self.profile)

    def target_format(self, source: Path) -> str:
        """Format the source converts to; 'original' keeps its own extension."""
        if self.output_format == "original":
            return SupportedFormats.normalize(source.suffix)
        return self.output_format

    def target_extension(self, source: Path) -> str:
        if self.output_format == "original":
            return source.suffix.lstrip(".")
        return self.output_format
