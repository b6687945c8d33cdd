"""
inference.py

Inference helpers for texture recognition against a cached reference set.
Extracts LBP descriptors from new images and classifies them with the
bounded k-NN classifier.

Features:
- Single image and batch prediction
- Per-neighbour distances for diagnostics
- Only requires the `.npz` reference feature cache
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from classifiers.KNN import KNNClassifier, majority_vote
from vector_extraction.feature_extractor_config import DEFAULT_CONFIG
from vector_extraction.feature_extractor_core import extract_features, load_image
from vector_extraction.feature_extractor_dataset import load_features

logger = logging.getLogger(__name__)


# -----------------------------
# Path Resolution
# -----------------------------

def _resolve_file_path(file_path: str) -> Path:
    """
    Resolve file path, checking both absolute and relative locations.

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    path = Path(file_path)

    if path.exists():
        return path

    abs_path = Path(__file__).parent / path
    if abs_path.exists():
        return abs_path

    raise FileNotFoundError(f"Could not find file: {file_path}")


# -----------------------------
# Reference Loading
# -----------------------------

def build_classifier(references_path: str,
                     n_neighbors: Optional[int] = None,
                     config: Optional[Dict[str, Any]] = None) -> KNNClassifier:
    """
    Load the reference cache and wrap it in a classifier.

    Args:
        references_path: Path to a features `.npz` file (keys X, y)
        n_neighbors: Number of voting neighbours (defaults to config)
        config: Extraction/classification config

    Returns:
        KNNClassifier over the cached references
    """
    cfg = config or DEFAULT_CONFIG
    references = load_features(str(_resolve_file_path(references_path)))
    k = int(n_neighbors if n_neighbors is not None else cfg.get("n_neighbors", 5))
    logger.info("Loaded %d reference features from %s (k=%d)", len(references), references_path, k)
    return KNNClassifier(references, n_neighbors=k)


# -----------------------------
# Prediction Functions
# -----------------------------

def predict_image(image_path: str,
                  classifier: KNNClassifier,
                  config: Optional[Dict[str, Any]] = None) -> str:
    """
    Predict class label for a single image.
    """
    image = load_image(image_path)
    return classifier.classify(extract_features(image, config=config))


def predict_batch(image_paths: List[str],
                  classifier: KNNClassifier,
                  config: Optional[Dict[str, Any]] = None) -> List[Tuple[str, str]]:
    """
    Predict class labels for a batch of images.

    Images that cannot be read are logged and skipped.

    Returns:
        List of (image_path, predicted_label) for every readable image

    Raises:
        ValueError: If none of the images could be loaded
    """
    features = []
    valid_paths = []
    for path in image_paths:
        try:
            image = load_image(path)
        except IOError as e:
            logger.warning("Could not load %s: %s", path, e)
            continue
        features.append(extract_features(image, config=config))
        valid_paths.append(path)

    if not features:
        raise ValueError("No valid images could be loaded")

    return list(zip(valid_paths, classifier.predict(features)))


def predict_with_distances(image_path: str,
                           classifier: KNNClassifier,
                           config: Optional[Dict[str, Any]] = None) -> Tuple[str, List[Tuple[str, float]]]:
    """
    Predict class label together with the voting neighbours.

    Returns:
        Tuple of (predicted_class, [(neighbor_label, distance), ...]) nearest first
    """
    image = load_image(image_path)
    query = extract_features(image, config=config)
    neighbors = classifier.kneighbors(query)
    return majority_vote(neighbors), [(n.label, n.distance) for n in neighbors]


# -----------------------------
# Example Usage
# -----------------------------

def main():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    print("=" * 60)
    print("Texture Recognition Inference")
    print("=" * 60)

    references_path = "features_train.npz"
    try:
        classifier = build_classifier(references_path)
    except FileNotFoundError:
        print(f"\nError: Reference features not found at {references_path}")
        print("Run standalone_scripts/run_feature_extractor_dataset.py first.")
        return

    dataset_path = Path("dataset")
    sample_images = sorted(str(p) for p in dataset_path.glob("*/*.jpg"))[:3]
    if not sample_images:
        print("No sample images found under dataset/.")
        return

    for image_path in sample_images:
        label, neighbors = predict_with_distances(image_path, classifier)
        print(f"\n{image_path}: {label}")
        for neighbor_label, distance in neighbors:
            print(f"  {neighbor_label:15s} {distance:.4f}")


if __name__ == "__main__":
    main()
