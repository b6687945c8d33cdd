from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
import pytest


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def flat_image():
    return np.full((40, 40), 128, dtype=np.uint8)


@pytest.fixture
def noise_image(rng):
    return rng.integers(0, 256, size=(40, 40), dtype=np.uint8)


@pytest.fixture
def small_config():
    return {
        "image_size": (40, 40),
        "cell_size": 10,
        "max_workers": 4,
        "n_neighbors": 3,
        "label_from": "parent_dir",
        "image_extensions": (".jpg", ".jpeg", ".png"),
    }


def write_image(path: Path, image: np.ndarray) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    assert cv2.imwrite(str(path), image)
    return str(path)


@pytest.fixture
def texture_dataset(tmp_path, rng):
    """Two classes on disk: flat patches and random noise."""
    root = tmp_path / "dataset"
    for i in range(4):
        write_image(root / "flat" / f"flat_{i}.png", np.full((40, 40), 60 + 20 * i, dtype=np.uint8))
        write_image(root / "noise" / f"noise_{i}.png", rng.integers(0, 256, size=(40, 40), dtype=np.uint8))
    return root


@pytest.fixture
def image_writer():
    return write_image
