"""Landmark extraction and coordinate mapping."""

from bodypose_app.vision.landmarks import LandmarkExtractor
from bodypose_app.vision.mapping import CoordinateMapper, aspect_fill_scale

__all__ = ["LandmarkExtractor", "CoordinateMapper", "aspect_fill_scale"]
