import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from tortoise import Tortoise

from legalease.api import chat, documents
from legalease.core.config import TORTOISE_ORM, Settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Open the database and prepare local object storage; close connections on shutdown."""
    settings = Settings()
    logger.info(f"Starting LegalEase ({settings.APP_ENV}) with model {settings.LLM_MODEL}")

    await Tortoise.init(config=TORTOISE_ORM)
    logger.info("Database initialized successfully")

    Path(settings.STORAGE_DIR).mkdir(parents=True, exist_ok=True)
    logger.info(f"Storing uploads under {settings.STORAGE_DIR}")

    yield

    await Tortoise.close_connections()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="LegalEase",
        description="Upload legal documents, get plain-English analysis and chat about them.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(documents.router, prefix="/api/v1", tags=["Documents"])
    app.include_router(chat.router, prefix="/api/v1", tags=["Chat"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()
