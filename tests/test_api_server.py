import base64
import io

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

import api_server
from classifiers.KNN import KNNClassifier
from vector_extraction.feature_extractor_core import extract_feature


def _encode(image: np.ndarray, fmt: str = "PNG") -> str:
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format=fmt)
    return base64.b64encode(buf.getvalue()).decode("ascii")


@pytest.fixture
def client(rng):
    references = [
        extract_feature(np.full((64, 64, 3), 90 + 10 * i, dtype=np.uint8), "flat") for i in range(3)
    ] + [
        extract_feature(rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8), "noise") for _ in range(3)
    ]
    api_server.set_classifier(KNNClassifier(references, n_neighbors=3))
    yield TestClient(api_server.app)
    api_server.set_classifier(None)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "references": 6}


def test_classify_png(client):
    image = np.full((64, 64, 3), 30, dtype=np.uint8)
    response = client.post("/classify", json={"image": _encode(image)})
    assert response.status_code == 200
    body = response.json()
    assert body["className"] == "flat"
    assert [n["label"] for n in body["neighbors"]] == ["flat"] * 3
    assert body["neighbors"][0]["distance"] == pytest.approx(0.0, abs=1e-9)


def test_classify_jpeg_with_custom_k(client, rng):
    image = rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)
    response = client.post("/classify", json={"image": _encode(image, "JPEG"), "n_neighbors": 1})
    assert response.status_code == 200
    body = response.json()
    assert body["className"] == "noise"
    assert len(body["neighbors"]) == 1


def test_classify_rejects_garbage(client):
    response = client.post("/classify", json={"image": base64.b64encode(b"not an image").decode()})
    assert response.status_code == 400


def test_classify_rejects_bad_k(client):
    image = np.full((64, 64, 3), 30, dtype=np.uint8)
    response = client.post("/classify", json={"image": _encode(image), "n_neighbors": 0})
    assert response.status_code == 400


def test_classify_without_references():
    api_server.set_classifier(None)
    image = np.full((64, 64, 3), 30, dtype=np.uint8)
    response = TestClient(api_server.app).post("/classify", json={"image": _encode(image)})
    assert response.status_code == 500


def test_classify_with_mismatched_references(client):
    api_server.set_classifier(KNNClassifier([extract_feature(np.zeros((64, 64)), "a", {"cell_size": 32, "image_size": None})]))
    image = np.full((64, 64, 3), 30, dtype=np.uint8)
    response = client.post("/classify", json={"image": _encode(image)})
    assert response.status_code == 400


def test_classify_runs_in_the_threadpool():
    import inspect

    assert not inspect.iscoroutinefunction(api_server.classify)
