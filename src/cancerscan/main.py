"""FastAPI entrypoint for the cancerscan service."""
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .errors import register_exception_handlers
from .middleware import ContentSizeLimitMiddleware, UnhandledErrorMiddleware
from .routes import predict
from .services.pipeline import RequestPipeline
from .utils.logger import get_logger

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[RequestPipeline] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "pipeline", None) is None:
            app.state.pipeline = RequestPipeline.from_settings(settings)
        logger.info("Service ready", environment=settings.environment)
        yield

    app = FastAPI(title="Cancer Screening API", version="0.1.0", lifespan=lifespan)
    if pipeline is not None:
        app.state.pipeline = pipeline

    register_exception_handlers(app)
    app.add_middleware(ContentSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(predict.router, prefix="/predict", tags=["predict"])

    @app.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        """Simple readiness endpoint for orchestration and CI checks."""
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run("cancerscan.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
