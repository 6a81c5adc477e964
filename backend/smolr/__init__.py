"""Smolr: batch image shrinking through external encoders."""

__version__ = "1.0.0"
