"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trashtracker import __version__
from trashtracker.api.routes import router
from trashtracker.config import Settings, get_settings
from trashtracker.core.controller import PresentationController
from trashtracker.core.pipeline import ClassificationPipeline
from trashtracker.errors import ModelLoadError
from trashtracker.ml.image_classifier import OnnxImageClassifier
from trashtracker.ml.inference import InferencePool
from trashtracker.ml.model_manager import OnnxModelManager
from trashtracker.ml.preprocessing import ImagePreprocessor

logger = logging.getLogger(__name__)


def init_app_state(app: FastAPI, settings: Settings) -> None:
    """Build the model handle, pipeline, worker and screen controller."""
    model_manager = OnnxModelManager(settings)
    classifier = OnnxImageClassifier(model_manager)
    pipeline = ClassificationPipeline(ImagePreprocessor.from_settings(settings), classifier)
    inference_pool = InferencePool()

    app.state.settings = settings
    app.state.model_manager = model_manager
    app.state.classifier = classifier
    app.state.pipeline = pipeline
    app.state.inference_pool = inference_pool
    app.state.controller = PresentationController(pipeline, inference_pool)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting TrashTracker (device=%s, model=%s, input=%sx%s %s)",
        settings.device,
        settings.model_name,
        settings.input_size,
        settings.input_size,
        settings.input_layout,
    )

    init_app_state(app, settings)

    if settings.preload_model:
        try:
            app.state.classifier.load()
        except ModelLoadError as exc:
            # Reported to the user on the first capture.
            logger.error("Model preload failed: %s", exc)

    logger.info("TrashTracker ready")
    yield

    logger.info("Shutting down TrashTracker")
    app.state.inference_pool.shutdown()
    app.state.model_manager.shutdown()
    logger.info("TrashTracker shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="TrashTracker",
        description="Photo-based waste sorting: trash, recycling or compost",
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application


app = create_app()
