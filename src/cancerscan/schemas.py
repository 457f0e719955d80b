"""Response schemas for the prediction API."""
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ClassificationResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    result: str
    suggestion: str
    created_at: str = Field(alias="createdAt")

    def to_record(self) -> Dict[str, Any]:
        """Document body as persisted; the id is the document key."""
        return self.model_dump(by_alias=True, exclude={"id"})


class PredictResponse(BaseModel):
    status: str = "success"
    message: str = "Model is predicted successfully"
    data: ClassificationResult


class FailResponse(BaseModel):
    status: str = "fail"
    message: str


class HistoryEntry(BaseModel):
    id: str
    history: ClassificationResult


class HistoriesResponse(BaseModel):
    status: str = "success"
    data: List[HistoryEntry]
