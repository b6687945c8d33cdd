"""
parallel_processing.py

Thread-pool fan-out for per-image feature extraction.
Workers hand results to a lock-guarded collector; a failing image is
logged and recorded, never allowed to abort the batch.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


# -----------------------------
# Thread-safe result collection
# -----------------------------

class FeatureCollector:
    """Thread-safe container for collecting extraction results."""

    def __init__(self):
        self.lock = threading.Lock()
        self._results: Dict[int, object] = {}
        self._failures: List[Tuple[str, str]] = []

    def add_result(self, position: int, result: object):
        """Store a result under its position in the input order."""
        with self.lock:
            self._results[position] = result

    def add_failure(self, item: str, exc: BaseException):
        with self.lock:
            self._failures.append((item, f"{type(exc).__name__}: {exc}"))

    def get_all_results(self) -> List[object]:
        """Results in input order, failures excluded."""
        with self.lock:
            return [self._results[i] for i in sorted(self._results)]

    def get_failures(self) -> List[Tuple[str, str]]:
        with self.lock:
            return list(self._failures)

    def __len__(self) -> int:
        with self.lock:
            return len(self._results)


# -----------------------------
# Parallel processing helpers
# -----------------------------

def run_parallel(items: Iterable[str],
                 func: Callable[[str], T],
                 max_workers: int,
                 collector: FeatureCollector | None = None) -> FeatureCollector:
    """
    Apply `func` to every item with a fixed-size thread pool.

    Args:
        items: Work items (typically image paths)
        func: Per-item function
        max_workers: Number of worker threads
        collector: Optional collector to append to

    Returns:
        The collector holding results and failures
    """
    collector = collector if collector is not None else FeatureCollector()

    def process_and_collect(position: int, item: str):
        try:
            result = func(item)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Skipping %s: %s", item, exc)
            collector.add_failure(item, exc)
            return
        collector.add_result(position, result)

    with ThreadPoolExecutor(max_workers=max(1, int(max_workers))) as executor:
        for position, item in enumerate(items):
            executor.submit(process_and_collect, position, item)

    return collector
