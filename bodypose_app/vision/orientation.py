"""
Device and image orientation helpers.
"""

import cv2
import numpy as np
from numpy.typing import NDArray

from bodypose_app.types import DeviceOrientation, Orientation

# Orientation the frame buffer must be read in, per physical device orientation
_EXIF_FOR_DEVICE = {
    DeviceOrientation.PORTRAIT_UPSIDE_DOWN: Orientation.LEFT,
    DeviceOrientation.LANDSCAPE_LEFT: Orientation.UP_MIRRORED,
    DeviceOrientation.LANDSCAPE_RIGHT: Orientation.DOWN,
    DeviceOrientation.PORTRAIT: Orientation.UP,
}


def exif_orientation_from_device(device: DeviceOrientation) -> Orientation:
    """Get the EXIF orientation for a device orientation (UP when unknown)."""
    return _EXIF_FOR_DEVICE.get(device, Orientation.UP)


def parse_device_orientation(value: str) -> DeviceOrientation:
    try:
        return DeviceOrientation(value)
    except ValueError:
        return DeviceOrientation.UNKNOWN


def apply_orientation(image: NDArray[np.uint8], orientation: Orientation) -> NDArray[np.uint8]:
    """
    Transform an image so that it displays upright.

    Args:
        image: Image as stored in the buffer
        orientation: EXIF orientation of the stored image

    Returns:
        Upright image (may be a view of the input when no transform is needed)
    """
    if orientation == Orientation.UP:
        return image
    if orientation == Orientation.UP_MIRRORED:
        return cv2.flip(image, 1)
    if orientation == Orientation.DOWN:
        return cv2.rotate(image, cv2.ROTATE_180)
    if orientation == Orientation.DOWN_MIRRORED:
        return cv2.flip(image, 0)
    if orientation == Orientation.LEFT_MIRRORED:
        return cv2.transpose(image)
    if orientation == Orientation.RIGHT:
        return cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)
    if orientation == Orientation.RIGHT_MIRRORED:
        return cv2.flip(cv2.transpose(image), -1)
    if orientation == Orientation.LEFT:
        return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return image
