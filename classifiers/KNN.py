"""
KNN Classifier for texture recognition

Bounded k-nearest-neighbour classifier over LBP descriptors.
A single streaming pass keeps the k closest references in a max-heap,
then a majority vote with an explicit tie-break picks the label.
Also evaluates the classifier on cached train/val features.
"""
import heapq
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from sklearn.metrics import accuracy_score, classification_report, confusion_matrix

from classifiers.distance import DistanceMetric, chi_squared
from vector_extraction.errors import EmptyReferenceSetError
from vector_extraction.feature_extractor_core import Feature

logger = logging.getLogger(__name__)

Query = Union[Feature, np.ndarray, Sequence[float]]


@dataclass(frozen=True)
class Neighbor:
    label: str
    distance: float
    index: int


# -----------------------------
# Bounded candidate set
# -----------------------------

class CandidateSet:
    """
    At most k neighbours, keyed by distance.

    Stored as a heapq min-heap on (-distance, -index) so the top entry is the
    current worst: the largest distance, and among equal distances the
    reference seen last.
    """

    def __init__(self, k: int):
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        self.k = k
        self._heap: List[Tuple[float, int, Neighbor]] = []

    def __len__(self) -> int:
        return len(self._heap)

    @property
    def worst_distance(self) -> float:
        return -self._heap[0][0] if self._heap else float("inf")

    def offer(self, neighbor: Neighbor) -> bool:
        """Insert if there is room or the neighbour beats the current worst."""
        entry = (-neighbor.distance, -neighbor.index, neighbor)
        if len(self._heap) < self.k:
            heapq.heappush(self._heap, entry)
            return True
        if neighbor.distance < self.worst_distance:
            heapq.heapreplace(self._heap, entry)
            return True
        return False

    def sorted_neighbors(self) -> List[Neighbor]:
        return sorted((e[2] for e in self._heap), key=lambda n: (n.distance, n.index))


def majority_vote(neighbors: Sequence[Neighbor]) -> str:
    """
    Most frequent label among the neighbours.

    Ties go to the smaller cumulative distance, then to the
    lexicographically smaller label.
    """
    if not neighbors:
        raise EmptyReferenceSetError("No neighbours to vote on")
    counts: Dict[str, int] = {}
    distance_sums: Dict[str, float] = {}
    for n in neighbors:
        counts[n.label] = counts.get(n.label, 0) + 1
        distance_sums[n.label] = distance_sums.get(n.label, 0.0) + n.distance
    return min(counts, key=lambda label: (-counts[label], distance_sums[label], label))


# -----------------------------
# Classifier
# -----------------------------

class KNNClassifier:
    """
    Distance-based k-NN with majority vote over labeled reference features.
    """

    def __init__(self,
                 references: Sequence[Feature],
                 n_neighbors: int = 5,
                 metric: DistanceMetric = chi_squared):
        """
        Args:
            references: Labeled reference features (borrowed, never modified)
            n_neighbors: Number of neighbours that vote
            metric: Distance between two feature vectors
        """
        if n_neighbors < 1:
            raise ValueError(f"n_neighbors must be at least 1, got {n_neighbors}")
        self.references = list(references)
        self.n_neighbors = int(n_neighbors)
        self.metric = metric

    def kneighbors(self, query: Query, n_neighbors: Optional[int] = None) -> List[Neighbor]:
        """
        The (at most) k closest references, nearest first.

        Raises:
            EmptyReferenceSetError: If there are no references
            LengthMismatchError: If any reference length differs from the query's
        """
        if not self.references:
            raise EmptyReferenceSetError("Cannot classify against an empty reference set")
        k = self.n_neighbors if n_neighbors is None else int(n_neighbors)
        vector = _as_vector(query)

        candidates = CandidateSet(k)
        for index, ref in enumerate(self.references):
            distance = self.metric(vector, ref.data)
            candidates.offer(Neighbor(label=ref.label, distance=float(distance), index=index))
        return candidates.sorted_neighbors()

    def classify(self, query: Query, n_neighbors: Optional[int] = None) -> str:
        neighbors = self.kneighbors(query, n_neighbors=n_neighbors)
        label = majority_vote(neighbors)
        logger.debug("Predicted %s from %d neighbours", label, len(neighbors))
        return label

    def predict(self, queries: Sequence[Query]) -> List[str]:
        return [self.classify(q) for q in queries]


def _as_vector(query: Query) -> np.ndarray:
    data = query.data if isinstance(query, Feature) else query
    return np.asarray(data, dtype=np.float64).reshape(-1)


# -----------------------------
# Model Evaluation
# -----------------------------

def get_evaluation_metrics(classifier: KNNClassifier,
                           val_features: Sequence[Feature]) -> Dict[str, Any]:
    """
    Evaluate classifier and return metrics as dictionary.

    Args:
        classifier: KNN classifier holding the reference features
        val_features: Labeled features to classify

    Returns:
        Dictionary containing all evaluation metrics
    """
    if not val_features:
        raise ValueError("No validation features to evaluate")
    y_val = np.asarray([f.label for f in val_features])
    y_pred = np.asarray(classifier.predict(val_features))

    unique_classes = sorted(set(y_val.tolist()) | set(y_pred.tolist()))
    overall_accuracy = float(accuracy_score(y_val, y_pred))

    per_class_accuracy = {}
    for cls in sorted(set(y_val.tolist())):
        mask = y_val == cls
        per_class_accuracy[str(cls)] = float(accuracy_score(y_val[mask], y_pred[mask]))

    cm = confusion_matrix(y_val, y_pred, labels=unique_classes)
    report_dict = classification_report(
        y_val, y_pred, labels=unique_classes, output_dict=True, zero_division=0
    )

    return {
        "overall_accuracy": overall_accuracy,
        "overall_accuracy_percent": overall_accuracy * 100,
        "per_class_accuracy": per_class_accuracy,
        "confusion_matrix": {"labels": unique_classes, "matrix": cm.tolist()},
        "classification_report": report_dict,
        "n_neighbors": classifier.n_neighbors,
        "validation_samples": int(len(y_val)),
    }


def evaluate_classifier(classifier: KNNClassifier,
                        val_features: Sequence[Feature]) -> Dict[str, Any]:
    """
    Evaluate classifier, print results, and return metrics.
    """
    metrics = get_evaluation_metrics(classifier, val_features)

    print(f"\n{'='*60}")
    print("CLASSIFIER EVALUATION RESULTS")
    print(f"{'='*60}")

    print(f"\n1. Overall Accuracy: {metrics['overall_accuracy']:.4f} "
          f"({metrics['overall_accuracy_percent']:.2f}%)")

    print(f"\n2. Per-Class Accuracy:")
    for cls, acc in metrics['per_class_accuracy'].items():
        print(f"   {cls}: {acc:.4f} ({acc*100:.2f}%)")

    print(f"\n3. Confusion Matrix:")
    labels = metrics['confusion_matrix']['labels']
    cm = metrics['confusion_matrix']['matrix']
    print("   Predicted ->")
    print("   " + " ".join([f"{cls:>10}" for cls in labels]))
    for i, cls in enumerate(labels):
        print(f"   {cls:>10} " + " ".join([f"{val:>10}" for val in cm[i]]))

    return metrics


# -----------------------------
# Main Execution
# -----------------------------

if __name__ == "__main__":
    from vector_extraction.feature_extractor_dataset import load_features

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print("Loading reference features...")
    train_features = load_features("../features_train.npz")
    print(f"Reference samples: {len(train_features)}")

    print("Loading validation features...")
    val_features = load_features("../features_val.npz")
    print(f"Validation samples: {len(val_features)}")

    best_accuracy = -1.0
    best_n = None

    n_values = [1, 3, 5, 7, 9]
    for n in n_values:
        classifier = KNNClassifier(train_features, n_neighbors=n)
        accuracy = get_evaluation_metrics(classifier, val_features)['overall_accuracy']
        print(f"N = {n}: Accuracy = {accuracy:.4f} ({accuracy*100:.2f}%)")
        if accuracy > best_accuracy:
            best_accuracy = accuracy
            best_n = n

    print(f"\nBest N value: {best_n}")
    print(f"Best accuracy: {best_accuracy:.4f} ({best_accuracy*100:.2f}%)")
    evaluate_classifier(KNNClassifier(train_features, n_neighbors=best_n), val_features)
