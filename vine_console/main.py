"""FastAPI application entry point"""

from contextlib import asynccontextmanager
from typing import Callable, Optional
from fastapi import FastAPI
import logging

from vine_console.api.routes import router
from vine_console.config import settings
from vine_console.services.controller import SchedulerController

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(
    controller_factory: Optional[Callable[[], SchedulerController]] = None,
) -> FastAPI:
    factory = controller_factory or SchedulerController.from_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown"""
        logger.info("Starting VINE scheduler console...")
        controller = factory()
        app.state.controller = controller
        await controller.start()

        yield

        logger.info("Shutting down...")
        await controller.close()

    app = FastAPI(
        title="VINE Scheduler Console",
        description="Controls and observes the VINE file-ingestion scheduler",
        version="1.0.0",
        lifespan=lifespan
    )
    app.include_router(router)
    return app


app = create_app()
