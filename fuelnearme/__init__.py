"""Nearby NSW fuel prices as GeoJSON."""

__version__ = "1.0.0"
