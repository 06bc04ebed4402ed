"""Pixel-level inspection of uploaded photos."""

from __future__ import annotations

import cv2
import numpy as np


def decode_image(data: bytes) -> np.ndarray | None:
    arr = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(arr, cv2.IMREAD_COLOR)


def measure_aspect_ratio(data: bytes) -> float | None:
    """Width / height rounded to 4 places, or None if the bytes don't decode."""
    if not data:
        return None
    img = decode_image(data)
    if img is None:
        return None
    height, width = img.shape[:2]
    if not height:
        return None
    return round(width / height, 4)
