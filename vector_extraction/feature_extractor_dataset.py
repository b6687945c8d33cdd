from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Tuple

import numpy as np
from sklearn.model_selection import train_test_split

from vector_extraction.errors import LengthMismatchError
from vector_extraction.feature_extractor_config import DEFAULT_CONFIG, IMAGE_EXTENSIONS
from vector_extraction.feature_extractor_core import Feature, process_image_for_features
from vector_extraction.parallel_processing import run_parallel

logger = logging.getLogger(__name__)


# -----------------------------
# Labels
# -----------------------------

def get_label_from_path(image_path: str) -> str:
    return Path(image_path).parent.name


def get_path_label(image_path: str) -> str:
    return str(image_path)


LABEL_STRATEGIES: Dict[str, Callable[[str], str]] = {
    "parent_dir": get_label_from_path,
    "path": get_path_label,
}


def resolve_label_fn(config: Dict[str, Any] | None = None) -> Callable[[str], str]:
    cfg = config or DEFAULT_CONFIG
    name = str(cfg.get("label_from", "parent_dir"))
    try:
        return LABEL_STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown label strategy: {name!r}. Expected one of {sorted(LABEL_STRATEGIES)}"
        ) from None


# -----------------------------
# Discovery
# -----------------------------

def get_image_paths(root: str, extensions: Iterable[str] | None = None) -> List[str]:
    allowed = {e.lower() for e in (extensions or IMAGE_EXTENSIONS)}
    paths = [p for p in Path(root).rglob("*") if p.is_file() and p.suffix.lower() in allowed]
    return [str(p) for p in sorted(paths, key=lambda p: p.as_posix().lower())]


def analyze_class_distribution(
    image_paths: List[str],
    get_label: Callable[[str], str] = get_label_from_path,
) -> Dict[str, List[str]]:
    class_to_paths: Dict[str, List[str]] = {}
    for p in image_paths:
        class_to_paths.setdefault(get_label(p), []).append(p)
    return class_to_paths


# -----------------------------
# Extraction
# -----------------------------

def process_images_parallel(image_paths: List[str], config: Dict[str, Any] | None = None) -> List[Feature]:
    """
    Extract features for many images with a thread pool.

    Unreadable or invalid images are logged and left out; the rest are
    returned in the order of `image_paths`.
    """
    cfg = config or DEFAULT_CONFIG
    max_workers = int(cfg.get("max_workers", 8))
    worker = partial(process_image_for_features, get_label=resolve_label_fn(cfg), config=cfg)
    collector = run_parallel(image_paths, worker, max_workers=max_workers)

    failures = collector.get_failures()
    results = collector.get_all_results()
    logger.info("Extracted %d/%d images (%d skipped)", len(results), len(image_paths), len(failures))
    return results


def split_train_val(
    class_to_paths: Dict[str, List[str]],
    test_size: float,
    random_state: int,
) -> Tuple[Dict[str, List[str]], Dict[str, List[str]]]:
    class_to_train: Dict[str, List[str]] = {}
    class_to_val: Dict[str, List[str]] = {}
    for label, paths in class_to_paths.items():
        if len(paths) < 2:
            # Too few to split: everything goes to the reference side.
            class_to_train[label] = list(paths)
            class_to_val[label] = []
            continue
        tr, va = train_test_split(paths, test_size=test_size, random_state=random_state)
        class_to_train[label] = tr
        class_to_val[label] = va
    return class_to_train, class_to_val


def build_feature_matrix(
    image_paths: List[str],
    train_output_path: str = "../features_train.npz",
    val_output_path: str = "../features_val.npz",
    test_size: float = 0.3,
    random_state: int = 42,
    config: Dict[str, Any] | None = None,
) -> Tuple[List[Feature], List[Feature]]:
    cfg = config or DEFAULT_CONFIG
    class_to_paths = analyze_class_distribution(image_paths, resolve_label_fn(cfg))
    class_to_train, class_to_val = split_train_val(class_to_paths, test_size, random_state)
    train = process_images_parallel(_flatten(class_to_train), config=cfg)
    val = process_images_parallel(_flatten(class_to_val), config=cfg)
    save_features(train, train_output_path)
    save_features(val, val_output_path)
    return train, val


# -----------------------------
# Feature cache
# -----------------------------

def save_features(features: List[Feature], file_path: str) -> None:
    X, y = _to_xy_arrays(features)
    np.savez(file_path, X=X, y=y)
    logger.info("Saved %d features to %s", len(features), file_path)


def load_features(file_path: str) -> List[Feature]:
    with np.load(file_path, allow_pickle=False) as data:
        if "X" not in data or "y" not in data:
            raise ValueError(f"File {file_path} must contain 'X' and 'y' arrays")
        X = np.asarray(data["X"], dtype=np.float64)
        y = data["y"]
    if X.ndim != 2 or X.shape[0] != y.shape[0]:
        raise ValueError(f"File {file_path} has inconsistent shapes X={X.shape} y={y.shape}")
    return [Feature(data=X[i], label=str(y[i])) for i in range(X.shape[0])]


def _to_xy_arrays(features: List[Feature]) -> Tuple[np.ndarray, np.ndarray]:
    dims = {len(f) for f in features}
    if len(dims) > 1:
        raise LengthMismatchError(f"Features have differing lengths: {sorted(dims)}")
    dim = dims.pop() if dims else 0
    X = np.asarray([f.data for f in features], dtype=np.float64).reshape(len(features), dim)
    y = np.asarray([f.label for f in features], dtype=str)
    return X, y


def _flatten(class_to_paths: Dict[str, List[str]]) -> List[str]:
    all_paths: List[str] = []
    for paths in class_to_paths.values():
        all_paths.extend(paths)
    return all_paths
