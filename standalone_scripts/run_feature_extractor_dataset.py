"""
Extract LBP descriptors over a class-per-directory dataset and save `.npz` reference caches.

Usage (from repo root):
  python standalone_scripts/run_feature_extractor_dataset.py
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from vector_extraction.feature_extractor_config import with_overrides
from vector_extraction.feature_extractor_dataset import (
    analyze_class_distribution,
    build_feature_matrix,
    get_image_paths,
)


DATASET_DIR = Path("../dataset")
OUT_TRAIN = Path("../features_train.npz")
OUT_VAL = Path("../features_val.npz")
TEST_SIZE = 0.3
SEED = 42
CELL_SIZE = 20
IMAGE_SIZE = (200, 200)
MAX_WORKERS = 8


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if not DATASET_DIR.exists():
        raise SystemExit(f"Dataset folder not found: {DATASET_DIR}")

    config = with_overrides(cell_size=CELL_SIZE, image_size=IMAGE_SIZE, max_workers=MAX_WORKERS)
    image_paths = get_image_paths(str(DATASET_DIR), config["image_extensions"])
    if not image_paths:
        raise SystemExit(f"No images found under: {DATASET_DIR}")

    class_to_paths = analyze_class_distribution(image_paths)
    print(f"Total classes: {len(class_to_paths)}")
    for label, paths in sorted(class_to_paths.items()):
        print(f"  {label:15s}: {len(paths):4d} images")

    train, val = build_feature_matrix(
        image_paths,
        train_output_path=str(OUT_TRAIN),
        val_output_path=str(OUT_VAL),
        test_size=float(TEST_SIZE),
        random_state=int(SEED),
        config=config,
    )
    print(f"Saved: {OUT_TRAIN} ({len(train)} features)")
    print(f"Saved: {OUT_VAL} ({len(val)} features)")
    for label, count in sorted(Counter(f.label for f in train).items()):
        print(f"  {label:15s}: {count:4d} references")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
