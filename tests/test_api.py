"""Integration tests for FastAPI endpoints."""
from __future__ import annotations

import os
from datetime import datetime

import pytest
from conftest import ConstantModel, RecordingStore, UnavailableStore, build_pipeline
from fastapi.testclient import TestClient

from cancerscan.config import Settings
from cancerscan.main import create_app
from cancerscan.services.interpreter import SUGGESTIONS


def make_client(pipeline, settings=None, **kwargs):
    settings = settings or Settings(_env_file=None, store_backend="memory")
    return TestClient(create_app(settings=settings, pipeline=pipeline), **kwargs)


def assert_fail_shape(response):
    body = response.json()
    assert set(body) == {"status", "message"}
    assert body["status"] == "fail"
    assert "Traceback" not in response.text
    return body


def test_healthcheck():
    with make_client(build_pipeline()) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_predict_success(image_bytes):
    store = RecordingStore()
    with make_client(build_pipeline(ConstantModel(0.9), store)) as client:
        first = client.post("/predict", files={"image": ("scan.png", image_bytes, "image/png")})
        second = client.post("/predict", files={"image": ("scan.png", image_bytes, "image/png")})

    assert first.status_code == 201
    body = first.json()
    assert body["status"] == "success"
    assert body["message"] == "Model is predicted successfully"
    data = body["data"]
    assert set(data) == {"id", "result", "suggestion", "createdAt"}
    assert data["result"] == "Cancer"
    assert data["suggestion"] == SUGGESTIONS["Cancer"]
    datetime.fromisoformat(data["createdAt"].replace("Z", "+00:00"))
    assert data["id"] != second.json()["data"]["id"]
    assert store.put_calls == 2


def test_predict_missing_image():
    with make_client(build_pipeline()) as client:
        response = client.post("/predict", data={"other": "value"})
    assert response.status_code == 400
    assert assert_fail_shape(response)["message"] == "No image file uploaded or file is invalid"


def test_predict_without_body():
    with make_client(build_pipeline()) as client:
        response = client.post("/predict")
    assert response.status_code == 400
    assert assert_fail_shape(response)["message"] == "No image file uploaded or file is invalid"


def test_oversized_upload_is_rejected_at_transport():
    store = RecordingStore()
    model = ConstantModel()
    with make_client(build_pipeline(model, store)) as client:
        response = client.post("/predict", files={"image": ("big.png", os.urandom(1_500_000), "image/png")})
    assert response.status_code == 400
    assert "maximum allowed: 1000000" in assert_fail_shape(response)["message"]
    assert store.put_calls == 0
    assert model.calls == 0


def chunked_multipart(boundary, payload_size, chunk_size=100_000):
    yield (
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="image"; filename="big.png"\r\n'
        "Content-Type: image/png\r\n\r\n"
    ).encode()
    for _ in range(payload_size // chunk_size):
        yield b"\x00" * chunk_size
    yield f"\r\n--{boundary}--\r\n".encode()


def test_streamed_upload_over_cap_is_rejected():
    store = RecordingStore()
    model = ConstantModel()
    boundary = "cancerscan-boundary"
    with make_client(build_pipeline(model, store)) as client:
        response = client.post(
            "/predict",
            content=chunked_multipart(boundary, 1_500_000),
            headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
        )
    assert "content-length" not in response.request.headers
    assert response.status_code == 400
    assert "maximum allowed: 1000000" in assert_fail_shape(response)["message"]
    assert store.put_calls == 0
    assert model.calls == 0


def test_oversized_upload_is_rejected_by_assembler():
    store = RecordingStore()
    settings = Settings(_env_file=None, store_backend="memory", max_request_bytes=5_000_000)
    with make_client(build_pipeline(store=store), settings=settings) as client:
        response = client.post("/predict", files={"image": ("big.png", os.urandom(1_500_000), "image/png")})
    assert response.status_code == 400
    assert assert_fail_shape(response)["message"] == "File size exceeds the 1MB limit"
    assert store.put_calls == 0


def test_invalid_image_is_inference_failure():
    with make_client(build_pipeline()) as client:
        response = client.post("/predict", files={"image": ("scan.png", b"not an image", "image/png")})
    assert response.status_code == 500
    assert assert_fail_shape(response)["message"] == "An error occurred while running the prediction"


def test_storage_unavailable(image_bytes):
    with make_client(build_pipeline(store=UnavailableStore())) as client:
        response = client.post("/predict", files={"image": ("scan.png", image_bytes, "image/png")})
    assert response.status_code == 500
    body = assert_fail_shape(response)
    assert body["message"] == "Failed to store or read prediction results"
    assert "10.0.0.7" not in response.text


def test_histories_lists_stored_predictions(image_bytes):
    with make_client(build_pipeline(ConstantModel(0.1))) as client:
        created = client.post("/predict", files={"image": ("scan.png", image_bytes, "image/png")}).json()["data"]
        response = client.get("/predict/histories")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["data"] == [{"id": created["id"], "history": created}]


def test_histories_storage_failure():
    with make_client(build_pipeline(store=UnavailableStore())) as client:
        response = client.get("/predict/histories")
    assert response.status_code == 500
    assert_fail_shape(response)


@pytest.mark.parametrize(
    "method, path, status_code, message",
    [
        ("get", "/missing", 404, "Not Found"),
        ("get", "/predict", 405, "Method Not Allowed"),
    ],
)
def test_framework_errors_use_fail_shape(method, path, status_code, message):
    with make_client(build_pipeline()) as client:
        response = getattr(client, method)(path)
    assert response.status_code == status_code
    assert assert_fail_shape(response)["message"] == message


def test_unexpected_errors_are_generic():
    settings = Settings(_env_file=None, store_backend="memory")
    app = create_app(settings=settings, pipeline=build_pipeline())

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internal detail")

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/boom", headers={"Origin": "https://example.org"})
    assert response.status_code == 500
    assert response.json() == {"status": "fail", "message": "An unexpected error occurred"}
    assert response.headers["access-control-allow-origin"] == "*"
    assert "secret" not in response.text
    assert "RuntimeError" not in response.text


def test_cors_allows_any_origin():
    with make_client(build_pipeline()) as client:
        response = client.get("/health", headers={"Origin": "https://example.org"})
    assert response.headers["access-control-allow-origin"] == "*"
