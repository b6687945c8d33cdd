from __future__ import annotations

import base64
import binascii
import io
import logging
import os
from pathlib import Path
from typing import List, Optional

import numpy as np
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

from classifiers.KNN import KNNClassifier, majority_vote
from vector_extraction.errors import EmptyReferenceSetError, LBPError
from vector_extraction.feature_extractor_config import DEFAULT_CONFIG
from vector_extraction.feature_extractor_core import extract_features
from vector_extraction.feature_extractor_dataset import load_features

logger = logging.getLogger(__name__)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

REFERENCE_FEATURES_PATH = Path(os.environ.get("REFERENCE_FEATURES_PATH", "features_train.npz"))

_classifier: Optional[KNNClassifier] = None


class ClassificationRequest(BaseModel):
    image: str
    n_neighbors: Optional[int] = None


class NeighborResponse(BaseModel):
    label: str
    distance: float


class ClassificationResponse(BaseModel):
    className: str
    neighbors: List[NeighborResponse]


def set_classifier(classifier: Optional[KNNClassifier]) -> None:
    global _classifier
    _classifier = classifier


def _load_references(path: Path = REFERENCE_FEATURES_PATH) -> None:
    if not path.exists():
        logger.warning("Reference features not found at %s", path)
        return
    references = load_features(str(path))
    set_classifier(KNNClassifier(references, n_neighbors=int(DEFAULT_CONFIG.get("n_neighbors", 5))))
    logger.info("Loaded %d reference features from %s", len(references), path)


def _base64_to_image(base64_string: str) -> np.ndarray:
    try:
        image_bytes = base64.b64decode(base64_string, validate=True)
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (binascii.Error, UnidentifiedImageError, OSError) as e:
        raise HTTPException(status_code=400, detail=f"Could not decode image: {e}") from e
    if image.mode != "RGB":
        image = image.convert("RGB")
    return np.array(image, dtype=np.uint8)


@app.on_event("startup")
async def startup_event():
    _load_references()


@app.post("/classify", response_model=ClassificationResponse)
def classify(request: ClassificationRequest):
    if _classifier is None:
        raise HTTPException(status_code=500, detail="Reference features not loaded")
    if request.n_neighbors is not None and request.n_neighbors < 1:
        raise HTTPException(status_code=400, detail="n_neighbors must be at least 1")

    image = _base64_to_image(request.image)
    try:
        features = extract_features(image)
        neighbors = _classifier.kneighbors(features, n_neighbors=request.n_neighbors)
    except EmptyReferenceSetError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    except LBPError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return ClassificationResponse(
        className=majority_vote(neighbors),
        neighbors=[NeighborResponse(label=n.label, distance=n.distance) for n in neighbors],
    )


@app.get("/health")
async def health():
    count = len(_classifier.references) if _classifier is not None else 0
    return {"status": "ok", "references": count}
