"""API routes for the file queue, settings and conversion runs."""
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from PIL import Image

from smolr.config import DEFAULT_ENABLED_FORMATS, MAX_QUALITY, MIN_QUALITY
from smolr.conversion.models import OptimizationProfile, SupportedFormats
from smolr.conversion.service import ConversionService, get_conversion_service
from smolr.db import get_history_stats, get_run_items, get_runs

logger = logging.getLogger("smolr.api")
router = APIRouter(prefix="/api", tags=["smolr"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/formats")
def get_formats():
    return {
        "all": [
            {"id": fmt, "name": SupportedFormats.display_name(fmt)}
            for fmt in SupportedFormats.ALL
        ],
        "enabled": SupportedFormats.sorted_formats(DEFAULT_ENABLED_FORMATS),
    }


@router.get("/profiles")
def get_profiles():
    return [
        {"id": p.value, "name": p.display_name, "description": p.description}
        for p in OptimizationProfile
    ]


def _settings_dict(svc: ConversionService) -> dict:
    s = svc.settings
    return {
        "output_format": s.output_format,
        "quality": s.quality,
        "profile": s.profile.value,
        "file_suffix": s.file_suffix,
    }


@router.get("/settings")
def get_settings(svc: ConversionService = Depends(get_conversion_service)):
    return _settings_dict(svc)


@router.put("/settings")
def update_settings(
    output_format: Optional[str] = Body(None),
    quality: Optional[int] = Body(None, ge=MIN_QUALITY, le=MAX_QUALITY),
    profile: Optional[str] = Body(None),
    file_suffix: Optional[str] = Body(None),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Change any subset of the settings; collisions are re-checked with the new output names."""
    changes = {}
    if output_format is not None:
        changes["output_format"] = output_format
    if quality is not None:
        changes["quality"] = quality
    if profile is not None:
        changes["profile"] = profile
    if file_suffix is not None:
        if "/" in file_suffix or "\\" in file_suffix:
            raise HTTPException(400, "File suffix must not contain path separators")
        changes["file_suffix"] = file_suffix
    try:
        svc.update_settings(**changes)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return _settings_dict(svc)


@router.get("/files")
def list_files(svc: ConversionService = Depends(get_conversion_service)):
    return [svc.describe(item) for item in svc.queue.items()]


@router.post("/files")
def add_files(
    paths: list[str] = Body(..., embed=True),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Queue files or directories (searched recursively for images)."""
    if not paths:
        raise HTTPException(400, "At least one path is required")
    if not svc.is_running:
        svc.messages.clear_errors()
        svc.stats.reset()
    added = svc.add_paths(Path(p) for p in paths if p.strip())
    return {
        "added": [svc.describe(item) for item in added],
        "warnings": svc.messages.warnings,
    }


@router.get("/files/{item_id}/info")
def file_info(item_id: str, svc: ConversionService = Depends(get_conversion_service)):
    """Size and pixel dimensions for display."""
    item = svc.queue.get(item_id)
    if item is None:
        raise HTTPException(404, "File not found")
    out = svc.describe(item)
    try:
        out["size_bytes"] = item.path.stat().st_size
    except OSError:
        out["size_bytes"] = None
    if item.is_image:
        try:
            with Image.open(item.path) as img:
                out["width"] = img.width
                out["height"] = img.height
        except Exception as e:
            logger.warning("Could not read dimensions of %s: %s", item.path, e)
    return out


@router.delete("/files/{item_id}")
def remove_file(item_id: str, svc: ConversionService = Depends(get_conversion_service)):
    if svc.remove(item_id) is None:
        raise HTTPException(404, "File not found")
    return {"removed": item_id}


@router.delete("/files")
def clear_files(svc: ConversionService = Depends(get_conversion_service)):
    svc.clear()
    return {"cleared": True}


@router.post("/convert")
def start_conversion(svc: ConversionService = Depends(get_conversion_service)):
    """Start converting every queued, unconverted image in order."""
    try:
        svc.start()
    except RuntimeError as e:
        raise HTTPException(409, str(e))
    return {"running": True}


@router.post("/convert/cancel")
def cancel_conversion(svc: ConversionService = Depends(get_conversion_service)):
    svc.cancel()
    return {"cancelled": True, "running": svc.is_running}


@router.get("/run")
def get_run(svc: ConversionService = Depends(get_conversion_service)):
    return {"running": svc.is_running, **svc.stats.to_dict()}


@router.get("/messages")
def get_messages(svc: ConversionService = Depends(get_conversion_service)):
    return {"errors": svc.messages.errors, "warnings": svc.messages.warnings}


@router.delete("/messages/warnings/{index}")
def dismiss_warning(index: int, svc: ConversionService = Depends(get_conversion_service)):
    try:
        svc.messages.dismiss_warning(index)
    except IndexError:
        raise HTTPException(404, "Warning not found")
    return {"warnings": svc.messages.warnings}


@router.delete("/messages/errors/{index}")
def dismiss_error(index: int, svc: ConversionService = Depends(get_conversion_service)):
    try:
        svc.messages.dismiss_error(index)
    except IndexError:
        raise HTTPException(404, "Error not found")
    return {"errors": svc.messages.errors}


@router.get("/runs")
def list_runs(limit: int = Query(50, ge=1, le=500)):
    return {"totals": get_history_stats(), "runs": get_runs(limit)}


@router.get("/runs/{run_id}")
def run_detail(run_id: str):
    items = get_run_items(run_id)
    if not items and not any(r["run_id"] == run_id for r in get_runs(500)):
        raise HTTPException(404, "Run not found")
    return {"run_id": run_id, "items": items}
