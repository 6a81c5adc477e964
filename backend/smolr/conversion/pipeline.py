"""Direct encode with decode-to-intermediate fallback.

Same-format conversions try the encoder on the source directly. Anything else,
or a failed direct attempt, decodes the source to a temporary PNG and encodes
that instead. The temporary file never outlives the call.
"""
import logging
import platform
import uuid
from pathlib import Path
from typing import Optional

from PIL import Image
from pillow_heif import register_heif_opener

from smolr.config import TEMP_DIR
from smolr.conversion.errors import CommandFailedError, DecodeError, ToolMissingError
from smolr.conversion.models import OptimizationProfile, SupportedFormats
from smolr.conversion.parameters import EncodingPlan, build_plan
from smolr.conversion.tools import ProcessRunner, ToolLocator

register_heif_opener()

logger = logging.getLogger("smolr.pipeline")

INTERMEDIATE_SUFFIX = ".png"

# source format -> (tool, argument layout)
DEDICATED_DECODERS = {
    "jxl": ("djxl", lambda src, dst: [src, dst]),
    "avif": ("avifdec", lambda src, dst: [src, dst]),
    "webp": ("dwebp", lambda src, dst: [src, "-o", dst]),
}
GENERIC_DECODERS = {
    "Darwin": ("sips", lambda src, dst: ["-s", "format", "png", src, "--out", dst]),
}
DEFAULT_GENERIC_DECODER = ("magick", lambda src, dst: [src, dst])


class EncodingPipeline:
    def __init__(
        self,
        locator: Optional[ToolLocator] = None,
        runner: Optional[ProcessRunner] = None,
        temp_dir: Path = TEMP_DIR,
        system: Optional[str] = None,
    ):
        self.locator = locator or ToolLocator()
        self.runner = runner or ProcessRunner()
        self.temp_dir = Path(temp_dir)
        self.system = system or platform.system()

    def convert(
        self,
        src: Path,
        dst: Path,
        target_format: str,
        quality: int,
        profile: OptimizationProfile,
    ) -> None:
        """Encode src into dst. Raises a ConversionError subclass on failure."""
        target = SupportedFormats.normalize(target_format)
        plan = build_plan(target, src, dst, quality, profile)
        if plan is None:
            raise ToolMissingError(target)
        executables = self._resolve(plan)

        if target == SupportedFormats.normalize(src.suffix):
            try:
                self._execute(plan, executables)
                return
            except CommandFailedError:
                logger.info("Direct encode of %s failed, retrying via intermediate", src.name)

        self._convert_via_intermediate(src, dst, target, quality, profile)

    def _resolve(self, plan: EncodingPlan) -> list[str]:
        executables = []
        for tool in plan.tools:
            path = self.locator.locate(tool)
            if path is None:
                logger.warning("%s not available, cannot encode %s", tool, plan.target_format)
                raise ToolMissingError(plan.target_format, tool)
            executables.append(path)
        return executables

    def _execute(self, plan: EncodingPlan, executables: list[str]) -> None:
        result = None
        for executable, step in zip(executables, plan.steps):
            result = self.runner.run(executable, list(step.args))
            if result.success:
                return
            logger.debug("%s failed (status %s)", step.tool, result.returncode)
        raise CommandFailedError(
            f"Encoding to {plan.target_format} failed",
            returncode=result.returncode if result else -1,
            stderr=result.stderr if result else "",
        )

    def _convert_via_intermediate(
        self,
        src: Path,
        dst: Path,
        target: str,
        quality: int,
        profile: OptimizationProfile,
    ) -> None:
        intermediate = self.temp_dir / f"{uuid.uuid4()}{INTERMEDIATE_SUFFIX}"
        try:
            self.decode(src, intermediate)
            plan = build_plan(target, intermediate, dst, quality, profile)
            self._execute(plan, self._resolve(plan))
        finally:
            try:
                intermediate.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove intermediate %s: %s", intermediate, e)

    def decode(self, src: Path, dst: Path) -> None:
        """Decode src into a PNG at dst. Raises DecodeError."""
        source_format = SupportedFormats.normalize(src.suffix)
        if source_format in DEDICATED_DECODERS:
            tool, layout = DEDICATED_DECODERS[source_format]
            executable = self.locator.locate(tool)
            if executable is None:
                raise DecodeError(f"{tool} not available to decode {src.name}")
        else:
            tool, layout = GENERIC_DECODERS.get(self.system, DEFAULT_GENERIC_DECODER)
            executable = self.locator.locate(tool)
            if executable is None:
                self._decode_with_pillow(src, dst)
                return
        result = self.runner.run(executable, layout(str(src), str(dst)))
        if not result.success:
            raise DecodeError(f"{tool} could not decode {src.name}")

    @staticmethod
    def _decode_with_pillow(src: Path, dst: Path) -> None:
        try:
            with Image.open(src) as img:
                if img.mode not in ("RGB", "RGBA", "L", "LA", "P", "I;16"):
                    img = img.convert("RGBA")
                img.save(dst, format="PNG")
        except (OSError, ValueError) as e:
            raise DecodeError(f"Pillow could not decode {src.name}: {e}") from e
        logger.debug("Decoded %s with Pillow", src.name)
