from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict

import cv2
import numpy as np

from vector_extraction.feature_extractor_config import DEFAULT_CONFIG
from vector_extraction.features import preprocess
from vector_extraction.features.texture import compute_region_grid, extract_lbp_grid


@dataclass(frozen=True, eq=False)
class Feature:
    data: np.ndarray
    label: str

    def __len__(self) -> int:
        return int(self.data.shape[0])


def load_image(image_path: str) -> np.ndarray:
    """
    Load image from path and convert to RGB.

    Raises:
        IOError: If OpenCV cannot decode the file
    """
    image = cv2.imread(str(image_path))
    if image is None:
        raise IOError(f"Could not read image: {image_path}")
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def extract_features(image: np.ndarray, config: Dict[str, Any] | None = None) -> np.ndarray:
    cfg = config or DEFAULT_CONFIG
    sample = preprocess.preprocess_to_sample(image, cfg)
    return extract_lbp_grid(sample.gray_u8, int(cfg.get("cell_size", 20)))


def extract_feature(image: np.ndarray, label: str, config: Dict[str, Any] | None = None) -> Feature:
    return Feature(data=extract_features(image, config=config), label=str(label))


def feature_report(image: np.ndarray, config: Dict[str, Any] | None = None) -> Dict[str, int]:
    cfg = config or DEFAULT_CONFIG
    sample = preprocess.preprocess_to_sample(image, cfg)
    h, w = sample.gray_u8.shape
    grid = compute_region_grid(h, w, int(cfg.get("cell_size", 20)))
    return {
        "width": int(w),
        "height": int(h),
        "cells_x": grid.cells_x,
        "cells_y": grid.cells_y,
        "total": grid.feature_dim,
    }


def process_image_for_features(
    image_path: str,
    get_label: Callable[[str], str],
    config: Dict[str, Any] | None = None,
) -> Feature:
    image = load_image(image_path)
    return extract_feature(image, get_label(image_path), config=config)
