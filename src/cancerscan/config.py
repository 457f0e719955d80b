"""Configuration management for the cancerscan service."""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: str = Field("development", alias="CANCERSCAN_ENV")
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(8080, alias="PORT")
    cors_origins_raw: str = Field("*", alias="CORS_ORIGINS")
    model_url: str = Field("models/cancerscan_resnet18.ts", alias="MODEL_URL")
    model_cache_dir: str = Field("models", alias="CANCERSCAN_MODEL_DIR")
    image_size: int = 224
    decision_threshold: float = Field(0.5, alias="DECISION_THRESHOLD")
    split_decode_errors: bool = Field(False, alias="SPLIT_DECODE_ERRORS")
    max_upload_bytes: int = Field(1_000_000, alias="MAX_UPLOAD_BYTES")
    max_request_bytes: int = Field(1_000_000, alias="MAX_REQUEST_BYTES")
    upload_chunk_size: int = Field(64 * 1024, alias="UPLOAD_CHUNK_SIZE")
    store_backend: str = Field("firestore", alias="CANCERSCAN_STORE")
    firestore_project: Optional[str] = Field(None, alias="GOOGLE_CLOUD_PROJECT")
    firestore_database: Optional[str] = Field(None, alias="FIRESTORE_DATABASE")
    store_credentials: Optional[str] = Field(None, alias="GOOGLE_APPLICATION_CREDENTIALS")
    predictions_collection: str = Field("predictions", alias="PREDICTIONS_COLLECTION")
    log_dir: str = Field("logs", alias="CANCERSCAN_LOG_DIR")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True
        protected_namespaces = ()

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins_raw.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
