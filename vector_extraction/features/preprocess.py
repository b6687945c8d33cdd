from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import cv2
import numpy as np


@dataclass(frozen=True)
class Sample:
    gray_u8: np.ndarray


def preprocess_to_sample(image: np.ndarray, config: Dict) -> Sample:
    gray = to_gray_u8(image)
    size = config.get("image_size")
    if size is not None:
        gray = _resize_gray(gray, tuple(size))
    return Sample(gray_u8=gray)


def to_gray_u8(image: np.ndarray) -> np.ndarray:
    """Accepts a 2D gray, RGB or RGBA image of any numeric dtype."""
    image = np.asarray(image)
    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    raise ValueError(f"Expected gray, RGB or RGBA image, got shape {image.shape}")


def _resize_gray(gray: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    if gray.shape[1] == size[0] and gray.shape[0] == size[1]:
        return gray
    return cv2.resize(gray, size, interpolation=cv2.INTER_LINEAR)
