"""Per-request orchestration of upload, inference and persistence."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from starlette.concurrency import run_in_threadpool

from ..config import Settings
from ..errors import Failure, FailureKind
from ..schemas import ClassificationResult
from ..utils.logger import get_logger
from .classifier import Classifier
from .interpreter import interpret_score
from .preprocess import IMAGE_SIZE, transform_image_bytes
from .storage import PredictionStore, build_store
from .upload import ByteSource, UploadAssembler, UploadedImage

logger = get_logger(__name__)


class Stage(str, Enum):
    RECEIVED = "received"
    ASSEMBLING = "assembling"
    DECODING = "decoding"
    CLASSIFYING = "classifying"
    INTERPRETING = "interpreting"
    PERSISTING = "persisting"
    RESPONDED = "responded"


def utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class RequestPipeline:
    classifier: Classifier
    store: PredictionStore
    assembler: UploadAssembler
    image_size: int = IMAGE_SIZE
    threshold: float = 0.5
    split_decode_errors: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "RequestPipeline":
        """Build the pipeline at startup; a model that fails to load aborts the process."""
        try:
            classifier = Classifier.load(settings.model_url, cache_dir=settings.model_cache_dir)
        except Exception:
            logger.exception("Failed to load classifier", location=settings.model_url)
            raise
        return cls(
            classifier=classifier,
            store=build_store(settings),
            assembler=UploadAssembler(settings.max_upload_bytes, settings.upload_chunk_size),
            image_size=settings.image_size,
            threshold=settings.decision_threshold,
            split_decode_errors=settings.split_decode_errors,
        )

    async def run(self, source: Optional[ByteSource]) -> Union[ClassificationResult, Failure]:
        """Walk one request through every stage, stopping at the first failure."""
        stage = Stage.RECEIVED
        try:
            stage = Stage.ASSEMBLING
            upload = await self.assembler.assemble(source)
            if isinstance(upload, Failure):
                return self._failed(stage, upload)

            stage = Stage.DECODING
            tensor = await self._decode(upload)
            if isinstance(tensor, Failure):
                return self._failed(stage, tensor)

            stage = Stage.CLASSIFYING
            try:
                score = await run_in_threadpool(self.classifier.classify, tensor)
            except Exception:
                logger.exception("Classifier forward pass failed")
                return self._failed(stage, Failure.of(FailureKind.INFERENCE))

            stage = Stage.INTERPRETING
            interpretation = interpret_score(score, self.threshold)
            result = ClassificationResult(
                id=str(uuid.uuid4()),
                result=interpretation.label,
                suggestion=interpretation.suggestion,
                created_at=utc_timestamp(),
            )

            stage = Stage.PERSISTING
            try:
                await self.store.put(result.id, result.to_record())
            except Exception:
                logger.exception("Failed to persist prediction", id=result.id)
                return self._failed(stage, Failure.of(FailureKind.STORAGE))
        except Exception:
            logger.exception("Prediction pipeline crashed", stage=stage.value)
            return self._failed(stage, Failure.of(FailureKind.UNEXPECTED))

        logger.info(
            "Prediction stored",
            id=result.id,
            result=result.result,
            score=round(score, 4),
            bytes=upload.size,
            stage=Stage.RESPONDED.value,
        )
        return result

    async def list_predictions(self) -> Union[List[ClassificationResult], Failure]:
        try:
            records = await self.store.list_all()
            return [ClassificationResult.model_validate(record) for record in records]
        except Exception:
            logger.exception("Failed to list predictions")
            return Failure.of(FailureKind.STORAGE)

    async def _decode(self, upload: UploadedImage):
        try:
            return await run_in_threadpool(transform_image_bytes, upload.data, self.image_size)
        except Exception as exc:
            logger.warning(
                "Could not decode upload",
                content_type=upload.content_type,
                bytes=upload.size,
                error=str(exc),
            )
            kind = FailureKind.DECODE if self.split_decode_errors else FailureKind.INFERENCE
            return Failure.of(kind)

    @staticmethod
    def _failed(stage: Stage, failure: Failure) -> Failure:
        logger.info("Prediction failed", stage=stage.value, kind=failure.kind.value, reason=failure.message)
        return failure
