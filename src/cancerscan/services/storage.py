"""Persistence of classification results."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from google.api_core import exceptions as gcloud_exceptions
from google.cloud import firestore
from google.oauth2 import service_account

from ..config import Settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]


class PredictionStoreError(RuntimeError):
    """Raised when the backend cannot complete a read or write."""


class PredictionStore(Protocol):
    async def put(self, prediction_id: str, record: Record) -> None: ...

    async def list_all(self) -> List[Record]: ...


class FirestorePredictionStore:
    def __init__(self, client: firestore.AsyncClient, collection: str = "predictions") -> None:
        self._client = client
        self._collection = collection

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirestorePredictionStore":
        credentials = None
        if settings.store_credentials:
            credentials = service_account.Credentials.from_service_account_file(settings.store_credentials)
        client = firestore.AsyncClient(
            project=settings.firestore_project,
            credentials=credentials,
            database=settings.firestore_database,
        )
        return cls(client, collection=settings.predictions_collection)

    async def put(self, prediction_id: str, record: Record) -> None:
        try:
            await self._client.collection(self._collection).document(prediction_id).set(record)
        except gcloud_exceptions.GoogleAPIError as exc:
            raise PredictionStoreError(f"Failed to write prediction {prediction_id}") from exc

    async def list_all(self) -> List[Record]:
        try:
            return [
                {"id": snapshot.id, **(snapshot.to_dict() or {})}
                async for snapshot in self._client.collection(self._collection).stream()
            ]
        except gcloud_exceptions.GoogleAPIError as exc:
            raise PredictionStoreError("Failed to list predictions") from exc


class InMemoryPredictionStore:
    """Process-local store for development and tests."""

    def __init__(self, records: Optional[Dict[str, Record]] = None) -> None:
        self._records: Dict[str, Record] = dict(records or {})

    async def put(self, prediction_id: str, record: Record) -> None:
        self._records[prediction_id] = dict(record)

    async def list_all(self) -> List[Record]:
        return [{"id": prediction_id, **record} for prediction_id, record in self._records.items()]


def build_store(settings: Settings) -> PredictionStore:
    backend = settings.store_backend.lower()
    if backend == "memory":
        logger.warning("Using in-memory prediction store; results are lost on restart")
        return InMemoryPredictionStore()
    if backend == "firestore":
        return FirestorePredictionStore.from_settings(settings)
    raise ValueError(f"Unsupported prediction store backend: {settings.store_backend}")
