"""Shared fixtures: tiny models, byte sources and stores."""
from __future__ import annotations

import io
from typing import Optional

import pytest
import torch
from PIL import Image

from cancerscan.services.classifier import Classifier
from cancerscan.services.pipeline import RequestPipeline
from cancerscan.services.storage import InMemoryPredictionStore, PredictionStoreError
from cancerscan.services.upload import UploadAssembler


class ConstantModel(torch.nn.Module):
    def __init__(self, score: float = 0.9) -> None:
        super().__init__()
        self.score = score
        self.calls = 0

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        self.calls += 1
        return torch.full((x.shape[0], 1), self.score)


class BytesSource:
    """In-memory ByteSource that records how much was read."""

    def __init__(self, data: bytes, readable: bool = True, error: Optional[Exception] = None) -> None:
        self._data = data
        self._offset = 0
        self._readable = readable
        self._error = error
        self.bytes_read = 0
        self.content_type = "image/png"

    @property
    def readable(self) -> bool:
        return self._readable

    async def read(self, size: int = -1) -> bytes:
        if self._error is not None:
            raise self._error
        end = len(self._data) if size < 0 else self._offset + size
        chunk = self._data[self._offset:end]
        self._offset += len(chunk)
        self.bytes_read += len(chunk)
        return chunk


class RecordingStore(InMemoryPredictionStore):
    def __init__(self) -> None:
        super().__init__()
        self.put_calls = 0

    async def put(self, prediction_id, record) -> None:
        self.put_calls += 1
        await super().put(prediction_id, record)


class UnavailableStore:
    def __init__(self) -> None:
        self.put_calls = 0

    async def put(self, prediction_id, record) -> None:
        self.put_calls += 1
        raise PredictionStoreError("backend unreachable at 10.0.0.7:443")

    async def list_all(self):
        raise PredictionStoreError("backend unreachable at 10.0.0.7:443")


def make_image_bytes(size=(224, 224), color=(200, 40, 40), fmt="PNG", mode="RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color=color if mode == "RGB" else 128).save(buffer, format=fmt)
    return buffer.getvalue()


def build_pipeline(model=None, store=None, max_bytes=1_000_000, **kwargs) -> RequestPipeline:
    return RequestPipeline(
        classifier=Classifier(model if model is not None else ConstantModel()),
        store=store if store is not None else RecordingStore(),
        assembler=UploadAssembler(max_bytes=max_bytes, chunk_size=64 * 1024),
        **kwargs,
    )


@pytest.fixture
def image_bytes() -> bytes:
    return make_image_bytes()


