"""Encoder arguments per target format, quality and optimization profile.

Knob functions are pure and return only tuning flags. ``build_plan`` binds
those flags and the input/output paths into concrete tool invocations.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from smolr.conversion.models import OptimizationProfile, SupportedFormats

LOSSLESS_QUALITY = 100
GIF_MAX_LOSSINESS = 200


@dataclass(frozen=True)
class ToolStep:
    tool: str
    args: tuple[str, ...]


@dataclass(frozen=True)
class EncodingPlan:
    """Steps are alternatives: a later step runs only if the previous one failed."""

    target_format: str
    steps: tuple[ToolStep, ...]

    @property
    def tools(self) -> list[str]:
        return [step.tool for step in self.steps]


# PNG

def png_parameters(profile: OptimizationProfile, quality: int) -> list[str]:
    if quality == LOSSLESS_QUALITY:
        # oxipng
        level, strip = {
            OptimizationProfile.FAST: ("2", "safe"),
            OptimizationProfile.BALANCED: ("3", "safe"),
            OptimizationProfile.QUALITY: ("4", "safe"),
            OptimizationProfile.SIZE: ("6", "all"),
        }[profile]
        return ["-o", level, "--strip", strip]
    # pngquant
    speed = {
        OptimizationProfile.FAST: "10",
        OptimizationProfile.BALANCED: "4",
        OptimizationProfile.QUALITY: "1",
        OptimizationProfile.SIZE: "1",
    }[profile]
    return ["--quality", f"{quality}-{quality}", "--speed", speed, "--force", "--strip"]


def png_optimization_level(profile: OptimizationProfile) -> str:
    """oxipng level used when pngquant cannot reach the requested quality."""
    return {
        OptimizationProfile.FAST: "2",
        OptimizationProfile.BALANCED: "3",
        OptimizationProfile.QUALITY: "4",
        OptimizationProfile.SIZE: "max",
    }[profile]


# JPEG

def jpeg_parameters(profile: OptimizationProfile, quality: int) -> list[str]:
    params = ["-quality", str(quality)]
    if profile == OptimizationProfile.FAST:
        params += ["-optimize"]
    elif profile in (OptimizationProfile.BALANCED, OptimizationProfile.QUALITY):
        params += ["-optimize", "-progressive"]
    else:
        params += ["-optimize", "-progressive", "-smooth", "10"]
    return params


# GIF

def gif_lossiness(profile: OptimizationProfile, quality: int) -> int:
    lossiness = 100 - quality
    if profile == OptimizationProfile.QUALITY:
        return max(0, lossiness - 10)
    if profile == OptimizationProfile.SIZE:
        return min(GIF_MAX_LOSSINESS, lossiness + 20)
    return lossiness


def gif_parameters(profile: OptimizationProfile, quality: int) -> list[str]:
    effort = "-O2" if profile == OptimizationProfile.FAST else "-O3"
    params = [effort, f"--lossy={gif_lossiness(profile, quality)}"]
    params += ["--no-comments", "--no-extensions", "--no-names"]
    return params


# WebP

def webp_parameters(profile: OptimizationProfile, quality: int) -> list[str]:
    params = ["-q", str(quality), "-metadata", "none"]
    params += {
        OptimizationProfile.FAST: ["-m", "0"],
        OptimizationProfile.BALANCED: ["-m", "4"],
        OptimizationProfile.QUALITY: ["-m", "6", "-pass", "10", "-af"],
        OptimizationProfile.SIZE: ["-m", "6", "-pass", "10"],
    }[profile]
    return params


# AVIF

def avif_parameters(profile: OptimizationProfile, quality: int) -> list[str]:
    params = ["-q", str(quality), "--ignore-exif", "--ignore-xmp"]
    params += {
        OptimizationProfile.FAST: ["-s", "10"],
        OptimizationProfile.BALANCED: ["-s", "4"],
        OptimizationProfile.QUALITY: ["-s", "0", "--min", "0", "--max", "56"],
        OptimizationProfile.SIZE: ["-s", "0"],
    }[profile]
    return params


# JPEG XL

def jxl_effort(profile: OptimizationProfile) -> str:
    return {
        OptimizationProfile.FAST: "3",
        OptimizationProfile.BALANCED: "5",
        OptimizationProfile.QUALITY: "9",
        OptimizationProfile.SIZE: "9",
    }[profile]


def jxl_parameters(profile: OptimizationProfile, quality: int, lossless: bool) -> list[str]:
    if lossless:
        return ["--lossless_jpeg=1", "-e", jxl_effort(profile)]
    return ["--lossless_jpeg=0", "-q", str(quality), "-e", jxl_effort(profile)]


def select_parameters(
    fmt: str,
    quality: int,
    profile: OptimizationProfile,
) -> Optional[list[tuple[str, list[str]]]]:
    """(tool, flags) pairs in the order they are tried, or None for an unknown format."""
    fmt = SupportedFormats.normalize(fmt)
    profile = OptimizationProfile(profile)
    lossless = quality == LOSSLESS_QUALITY
    if fmt == "png":
        if lossless:
            return [("oxipng", png_parameters(profile, quality))]
        return [
            ("pngquant", png_parameters(profile, quality)),
            ("oxipng", ["-o", png_optimization_level(profile), "--strip", "all"]),
        ]
    if fmt == "jpeg":
        return [("cjpeg", jpeg_parameters(profile, quality))]
    if fmt == "gif":
        return [("gifsicle", gif_parameters(profile, quality))]
    if fmt == "webp":
        return [("cwebp", webp_parameters(profile, quality))]
    if fmt == "avif":
        return [("avifenc", avif_parameters(profile, quality))]
    if fmt == "jxl":
        return [("cjxl", jxl_parameters(profile, quality, lossless))]
    return None


def _bind_paths(tool: str, flags: list[str], src: str, dst: str) -> list[str]:
    if tool == "oxipng":
        return flags + [src, "--out", dst]
    if tool == "pngquant":
        return flags + ["--output", dst, src]
    if tool == "cjpeg":
        return flags + ["-outfile", dst, src]
    if tool == "gifsicle":
        return flags + ["-o", dst, src]
    if tool == "cwebp":
        return flags + [src, "-o", dst]
    if tool == "avifenc":
        return flags + [src, dst]
    if tool == "cjxl":
        return [src, dst] + flags
    raise ValueError(f"No argument layout for tool: {tool}")


def build_plan(
    fmt: str,
    src: Path,
    dst: Path,
    quality: int,
    profile: OptimizationProfile,
) -> Optional[EncodingPlan]:
    selected = select_parameters(fmt, quality, profile)
    if selected is None:
        return None
    steps = tuple(
        ToolStep(tool=tool, args=tuple(_bind_paths(tool, flags, str(src), str(dst))))
        for tool, flags in selected
    )
    return EncodingPlan(target_format=SupportedFormats.normalize(fmt), steps=steps)
