"""
Aspect-fill mapping from frame pixel space to view space.

The sensor delivers landscape frames that are displayed in a portrait view,
so the mapping pairs view width with frame height and swaps the axes of every
point.
"""

from typing import List, Sequence

import numpy as np

from bodypose_app.types import DisplayPoint, ImagePoint


def aspect_fill_scale(
    dest_width: float,
    dest_height: float,
    frame_width: float,
    frame_height: float,
) -> float:
    """
    Scale that makes a rotated frame cover the destination.

    Returns 1.0 instead of inf/NaN when any dimension is degenerate.
    """
    if min(dest_width, dest_height, frame_width, frame_height) <= 0:
        return 1.0

    with np.errstate(divide="ignore", invalid="ignore"):
        x_scale = np.float64(dest_width) / np.float64(frame_height)
        y_scale = np.float64(dest_height) / np.float64(frame_width)
    scale = np.fmax(x_scale, y_scale)

    if not np.isfinite(scale):
        return 1.0
    return float(scale)


class CoordinateMapper:
    """Maps image points into display points with an aspect-fill policy."""

    def map(
        self,
        points: Sequence[ImagePoint],
        dest_width: float,
        dest_height: float,
        frame_width: float,
        frame_height: float,
    ) -> List[DisplayPoint]:
        scale = aspect_fill_scale(dest_width, dest_height, frame_width, frame_height)

        coords = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        # (x, y) -> (y, x)
        mapped = coords[:, ::-1] * scale

        return [DisplayPoint(float(x), float(y)) for x, y in mapped]

    __call__ = map
