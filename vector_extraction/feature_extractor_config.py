from __future__ import annotations

from typing import Any, Dict


IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff", ".webp")


DEFAULT_CONFIG: Dict[str, Any] = {
    # (width, height); None keeps the native size, which only works when every image shares it.
    "image_size": (200, 200),
    "cell_size": 20,
    "max_workers": 8,
    "n_neighbors": 5,
    "label_from": "parent_dir",
    "image_extensions": IMAGE_EXTENSIONS,
}


def with_overrides(**overrides: Any) -> Dict[str, Any]:
    cfg = dict(DEFAULT_CONFIG)
    cfg.update(overrides)
    return cfg
