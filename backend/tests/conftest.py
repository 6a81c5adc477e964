"""
Shared fakes: external tools are never executed in tests.
"""

from pathlib import Path
from typing import Callable, Optional

import pytest

from smolr.conversion.messages import MessageBoard
from smolr.conversion.models import ConversionSettings
from smolr.conversion.pipeline import EncodingPipeline
from smolr.conversion.service import ConversionService
from smolr.conversion.tools import CommandResult
from smolr.conversion.validation import ValidationChecker

ALL_TOOLS = {
    "oxipng", "pngquant", "cjpeg", "gifsicle", "cwebp", "avifenc", "cjxl",
    "djxl", "avifdec", "dwebp", "magick", "sips",
}


def output_arg(tool: str, args: list[str]) -> str:
    """Where a tool invocation writes its result."""
    if tool in ("cjxl", "djxl"):
        return args[1]
    if tool in ("avifenc", "avifdec", "magick"):
        return args[-1]
    for flag in ("--out", "--output", "-outfile", "-o"):
        if flag in args:
            return args[args.index(flag) + 1]
    raise AssertionError(f"no output argument for {tool}: {args}")


class FakeLocator:
    def __init__(self, available=ALL_TOOLS):
        self.available = set(available)

    def locate(self, tool: str) -> Optional[str]:
        return f"/fake/bin/{tool}" if tool in self.available else None


class FakeRunner:
    """Records calls and writes an output file for every successful invocation."""

    def __init__(
        self,
        fail: tuple = (),
        sizes: Optional[dict] = None,
        hook: Optional[Callable[[str, list[str]], None]] = None,
    ):
        self.fail = set(fail)
        self.sizes = sizes or {}
        self.hook = hook
        self.calls: list[tuple[str, list[str]]] = []

    @property
    def tools(self) -> list[str]:
        return [tool for tool, _ in self.calls]

    def run(self, executable: str, args: list[str]) -> CommandResult:
        tool = Path(executable).name
        self.calls.append((tool, list(args)))
        if self.hook is not None:
            self.hook(tool, list(args))
        if tool in self.fail:
            return CommandResult(returncode=1, stderr=f"{tool}: failed")
        out = Path(output_arg(tool, args))
        out.write_bytes(b"x" * self.sizes.get(out.name, 10))
        return CommandResult(returncode=0)


def make_file(path: Path, size: int = 100) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\0" * size)
    return path


@pytest.fixture
def temp_dir(tmp_path):
    d = tmp_path / "intermediate"
    d.mkdir()
    return d


@pytest.fixture
def images_dir(tmp_path):
    d = tmp_path / "images"
    d.mkdir()
    return d


@pytest.fixture
def make_service(temp_dir):
    def _make(runner=None, locator=None, **settings):
        runner = runner or FakeRunner()
        messages = MessageBoard()
        pipeline = EncodingPipeline(
            locator=locator or FakeLocator(),
            runner=runner,
            temp_dir=temp_dir,
            system="Linux",
        )
        return ConversionService(
            pipeline=pipeline,
            settings=ConversionSettings(**settings),
            messages=messages,
            validator=ValidationChecker(messages, low_disk_threshold=0),
        )
    return _make
