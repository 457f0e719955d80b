"""Bounded assembly of uploaded image streams."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Union, runtime_checkable

from fastapi import UploadFile

from ..errors import Failure, FailureKind

NO_IMAGE_MESSAGE = "No image file uploaded or file is invalid"


@runtime_checkable
class ByteSource(Protocol):
    """Readable byte stream. ``read`` returns ``b""`` once the stream has ended."""

    @property
    def readable(self) -> bool: ...

    async def read(self, size: int = -1) -> bytes: ...


class UploadFileSource:
    """Adapts a Starlette ``UploadFile`` to :class:`ByteSource`."""

    def __init__(self, upload: UploadFile) -> None:
        self._upload = upload

    @property
    def readable(self) -> bool:
        return not self._upload.file.closed

    @property
    def content_type(self) -> Optional[str]:
        return self._upload.content_type

    async def read(self, size: int = -1) -> bytes:
        return await self._upload.read(size)


@dataclass(frozen=True, slots=True)
class UploadedImage:
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


def size_limit_message(max_bytes: int) -> str:
    return f"File size exceeds the {max_bytes / 1_000_000:g}MB limit"


class UploadAssembler:
    def __init__(self, max_bytes: int = 1_000_000, chunk_size: int = 64 * 1024) -> None:
        if max_bytes <= 0 or chunk_size <= 0:
            raise ValueError("max_bytes and chunk_size must be positive")
        self.max_bytes = max_bytes
        self.chunk_size = chunk_size

    async def assemble(self, source: Optional[ByteSource]) -> Union[UploadedImage, Failure]:
        """Read ``source`` to completion, failing as soon as the cap is crossed."""
        if source is None or not isinstance(source, ByteSource) or not source.readable:
            return Failure.of(FailureKind.VALIDATION, NO_IMAGE_MESSAGE)

        buffer = bytearray()
        while True:
            # Never ask for more than one byte past the cap.
            want = min(self.chunk_size, self.max_bytes - len(buffer) + 1)
            try:
                chunk = await source.read(want)
            except (OSError, ValueError) as exc:
                return Failure.of(FailureKind.VALIDATION, f"Failed to read uploaded file: {exc}")
            if not chunk:
                break
            if len(buffer) + len(chunk) > self.max_bytes:
                return Failure.of(FailureKind.VALIDATION, size_limit_message(self.max_bytes))
            buffer.extend(chunk)

        if not buffer:
            return Failure.of(FailureKind.VALIDATION, NO_IMAGE_MESSAGE)
        return UploadedImage(data=bytes(buffer), content_type=getattr(source, "content_type", None))
