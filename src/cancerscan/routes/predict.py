"""Endpoints for image classification and prediction history."""
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from ..errors import Failure, failure_response
from ..schemas import FailResponse, HistoriesResponse, HistoryEntry, PredictResponse
from ..services.pipeline import RequestPipeline
from ..services.upload import UploadFileSource

router = APIRouter()

FAILURE_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": FailResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": FailResponse},
}


def get_pipeline(request: Request) -> RequestPipeline:
    return request.app.state.pipeline


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=PredictResponse,
    responses=FAILURE_RESPONSES,
)
async def predict(
    image: Optional[UploadFile] = File(default=None),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    """Classify an uploaded image and store the result."""
    source = UploadFileSource(image) if image is not None else None
    outcome = await pipeline.run(source)
    if isinstance(outcome, Failure):
        return failure_response(outcome)
    return PredictResponse(data=outcome)


@router.get(
    "/histories",
    status_code=status.HTTP_200_OK,
    response_model=HistoriesResponse,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": FailResponse}},
)
async def list_histories(pipeline: RequestPipeline = Depends(get_pipeline)):
    """Return every stored prediction."""
    outcome = await pipeline.list_predictions()
    if isinstance(outcome, Failure):
        return failure_response(outcome)
    return HistoriesResponse(data=[HistoryEntry(id=item.id, history=item) for item in outcome])
