"""Locating and running the external encoder/decoder executables."""
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from smolr.config import TOOL_TIMEOUT_SECONDS, TOOLS_DIR

logger = logging.getLogger("smolr.tools")


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ToolLocator:
    """Resolve a tool name to an absolute path: bundled directory first, then PATH."""

    def __init__(self, tools_dir: Optional[Path] = TOOLS_DIR, search_path: bool = True):
        self.tools_dir = Path(tools_dir) if tools_dir else None
        self.search_path = search_path

    def locate(self, tool: str) -> Optional[str]:
        if self.tools_dir is not None:
            candidate = self.tools_dir / tool
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate.resolve())
        if self.search_path:
            found = shutil.which(tool)
            if found:
                return str(Path(found).resolve())
        logger.debug("Tool not found: %s", tool)
        return None


class ProcessRunner:
    """Run one executable to completion. Failures are returned, not raised."""

    def __init__(self, timeout: Optional[int] = TOOL_TIMEOUT_SECONDS):
        self.timeout = timeout

    def run(self, executable: str, args: list[str]) -> CommandResult:
        cmd = [executable, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error("Command timed out after %ss: %s", self.timeout, Path(executable).name)
            return CommandResult(returncode=-1, stderr="timeout")
        except OSError as e:
            logger.error("Failed to run command %s: %s", executable, e)
            return CommandResult(returncode=-1, stderr=str(e))
        if result.returncode != 0:
            logger.error(
                "Command failed with status %s: %s",
                result.returncode,
                (result.stderr or result.stdout or "").strip(),
            )
        return CommandResult(returncode=result.returncode, stderr=result.stderr or "")
