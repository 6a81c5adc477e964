from .models import ConversionSettings, ConversionStatus, FileItem, OptimizationProfile, StatusKind, SupportedFormats
from .service import ConversionService, RunSummary

__all__ = [
    "ConversionService",
    "ConversionSettings",
    "ConversionStatus",
    "FileItem",
    "OptimizationProfile",
    "RunSummary",
    "StatusKind",
    "SupportedFormats",
]
