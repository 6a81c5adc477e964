"""Per-run counters and the savings summary."""
from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class RunStatistics:
    total_files_to_convert: int = 0
    files_converted: int = 0
    total_original_bytes: int = 0
    total_bytes_saved: int = 0  # negative when outputs grew

    def reset(self, total_files: int = 0) -> None:
        self.total_files_to_convert = total_files
        self.files_converted = 0
        self.total_original_bytes = 0
        self.total_bytes_saved = 0

    def record_success(self, original_size: Optional[int], output_size: Optional[int]) -> None:
        """Count one converted file; sizes are only summed when both are known."""
        self.files_converted += 1
        if original_size is None or output_size is None:
            return
        self.total_original_bytes += original_size
        self.total_bytes_saved += original_size - output_size

    @property
    def saved_percent(self) -> float:
        if self.total_original_bytes <= 0:
            return 0.0
        return self.total_bytes_saved / self.total_original_bytes * 100.0

    def progress_text(self) -> str:
        return f"{self.files_converted}/{self.total_files_to_convert} files got smolr'd"

    def savings_text(self) -> str:
        if self.total_bytes_saved > 0:
            return (
                f"Saved {format_bytes(self.total_bytes_saved)} out of "
                f"{format_bytes(self.total_original_bytes)} ({self.saved_percent:.1f} %)"
            )
        if self.total_bytes_saved < 0:
            return (
                f"Increased by {format_bytes(abs(self.total_bytes_saved))} "
                f"(total: {format_bytes(self.total_original_bytes)})"
            )
        return ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["saved_percent"] = round(self.saved_percent, 1)
        data["progress_text"] = self.progress_text()
        data["savings_text"] = self.savings_text()
        return data


def format_bytes(num: int) -> str:
    """File-style byte count in KB, MB or GB (decimal units)."""
    value = float(num)
    for unit in ("KB", "MB"):
        value /= 1000.0
        if abs(value) < 1000.0:
            return f"{value:.1f} {unit}" if abs(value) < 100 else f"{value:.0f} {unit}"
    value /= 1000.0
    return f"{value:.2f} GB"
