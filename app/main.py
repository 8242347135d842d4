"""FastAPI application for the face greeter kiosk."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router as api_v1_router
from app.core.config import settings
from app.core.container import container
from app.core.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load the gallery and wire the kiosk services for the app's lifetime.

    The detection loop is started here only when autostart is configured;
    shutdown stops it and cancels any enrollment still in progress.
    """
    logger.info(
        "Kiosk starting",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        frame_source=settings.FRAME_SOURCE,
        gallery_backend=settings.GALLERY_BACKEND,
    )
    await container.initialize()

    yield

    await container.cleanup()
    logger.info("Kiosk stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/health")
async def health_check() -> dict:
    """Liveness check; also says whether faces are currently being watched for."""
    loop = container.detection_loop
    return {
        "status": "healthy" if container.is_initialized else "starting",
        "detecting": bool(loop and loop.is_running),
    }


def run() -> None:
    """Serve the API with uvicorn (console entry point)."""
    import uvicorn

    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
