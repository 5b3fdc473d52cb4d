"""Image utilities for the blob optimizer: format gate and target sizing."""

import math
from typing import NamedTuple

from PIL import Image

SUPPORTED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
    }
)

OUTPUT_CONTENT_TYPE = "image/jpeg"
OUTPUT_FORMAT = "JPEG"

# Modes the JPEG encoder accepts as-is
_JPEG_MODES = ("RGB", "L", "CMYK")


class TargetSize(NamedTuple):
    """Output dimensions and whether they differ from the input."""

    width: int
    height: int
    changed: bool


def is_supported_mime_type(content_type: str) -> bool:
    """
    Check whether a declared content type is one of the supported raster formats.

    Args:
        content_type: Content type as declared by the object store

    Returns:
        True for JPEG, PNG and GIF content types, False otherwise
    """
    if not content_type:
        return False
    return content_type.lower() in SUPPORTED_MIME_TYPES


def compute_target_size(width: int, height: int, max_dimension: int) -> TargetSize:
    """
    Compute the downscaled size bounded by max_dimension, keeping aspect ratio.

    Width is clamped first and height recomputed from the original ratio.
    If height still exceeds the bound it is clamped in a second pass and
    width is recomputed from the intermediate size. Legacy output depends
    on this order, so the two passes must not be merged.

    Args:
        width: Natural image width
        height: Natural image height
        max_dimension: Upper bound for both sides, 0 disables resizing

    Returns:
        TargetSize with changed=False when no resize is needed
    """
    if max_dimension == 0 or (width <= max_dimension and height <= max_dimension):
        return TargetSize(width, height, False)

    target_width, target_height = width, height
    if target_width > max_dimension:
        width_before = target_width
        target_width = max_dimension
        target_height = int(
            math.floor(float(target_height) * (float(target_width) / float(width_before)))
        )
    if target_height > max_dimension:
        height_before = target_height
        target_height = max_dimension
        target_width = int(
            math.floor(float(target_width) * (float(target_height) / float(height_before)))
        )
    return TargetSize(target_width, target_height, True)


def to_jpeg_compatible(img: "Image.Image") -> "Image.Image":
    """
    Convert an image into a mode the JPEG encoder can write.

    Palette and alpha images are flattened to RGB.
    """
    if img.mode in _JPEG_MODES:
        return img
    return img.convert("RGB")
