"""API route definitions."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request, UploadFile, status

from trashtracker.api.middleware import verify_api_key
from trashtracker.api.schemas import (
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    ModelInfo,
    ModelsResponse,
    ScreenResponse,
)
from trashtracker.ml.image_source import CameraImageSource, UploadImageSource
from trashtracker.ml.model_manager import MODEL_REGISTRY

if TYPE_CHECKING:
    from trashtracker.config import Settings
    from trashtracker.core.controller import PresentationController
    from trashtracker.core.pipeline import ClassificationPipeline
    from trashtracker.ml.image_source import ImageSource
    from trashtracker.ml.inference import InferencePool
    from trashtracker.ml.model_manager import ModelManager

router = APIRouter(
    prefix="/api/v1",
    dependencies=[Depends(verify_api_key)],
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
)


def _get_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def _get_inference_pool(request: Request) -> InferencePool:
    pool: InferencePool = request.app.state.inference_pool
    return pool


def _get_controller(request: Request) -> PresentationController:
    controller: PresentationController = request.app.state.controller
    return controller


def _get_pipeline(request: Request) -> ClassificationPipeline:
    pipeline: ClassificationPipeline = request.app.state.pipeline
    return pipeline


def _get_model_manager(request: Request) -> ModelManager:
    manager: ModelManager = request.app.state.model_manager
    return manager


async def _capture(controller: PresentationController, source: ImageSource) -> ScreenResponse:
    if await asyncio.to_thread(controller.capture, source) is not None:
        await asyncio.to_thread(controller.wait)
    return ScreenResponse.from_controller(controller)


@router.get(
    "/screen",
    response_model=ScreenResponse,
    summary="Current screen",
)
async def get_screen(request: Request) -> ScreenResponse:
    """Return the current screen, moving to the result once classification finished."""
    controller = _get_controller(request)
    controller.poll()
    return ScreenResponse.from_controller(controller)


@router.post(
    "/screen/start",
    response_model=ScreenResponse,
    summary="Leave the prompt screen",
)
async def start(request: Request) -> ScreenResponse:
    controller = _get_controller(request)
    controller.start()
    return ScreenResponse.from_controller(controller)


@router.post(
    "/screen/capture",
    response_model=ScreenResponse,
    summary="Classify an uploaded photo",
)
async def capture_upload(request: Request, file: UploadFile) -> ScreenResponse:
    """Classify a photo taken or picked on the client and show the result screen."""
    data = await file.read()
    return await _capture(_get_controller(request), UploadImageSource(data))


@router.post(
    "/screen/capture-camera",
    response_model=ScreenResponse,
    summary="Classify a frame from the server camera",
)
async def capture_camera(request: Request) -> ScreenResponse:
    """Grab one frame from the configured camera and show the result screen."""
    settings = _get_settings(request)
    return await _capture(_get_controller(request), CameraImageSource(settings.camera_device))


@router.post(
    "/screen/cancel",
    response_model=ScreenResponse,
    summary="Dismiss the camera or photo picker",
)
async def cancel(request: Request) -> ScreenResponse:
    """Report a cancelled acquisition; the capture screen stays as it is."""
    return await _capture(_get_controller(request), UploadImageSource(None))


@router.post(
    "/screen/back",
    response_model=ScreenResponse,
    summary="Return from the result screen",
)
async def back(request: Request) -> ScreenResponse:
    controller = _get_controller(request)
    controller.back()
    return ScreenResponse.from_controller(controller)


@router.post(
    "/classify-image",
    response_model=MessageResponse,
    summary="Classify an image and return its disposal instruction",
)
async def classify_image(request: Request, file: UploadFile) -> MessageResponse:
    """Run the classification pipeline on an upload without touching the screens."""
    data = await file.read()
    pool = _get_inference_pool(request)
    message = await pool.run(_get_pipeline(request).run, data)
    return MessageResponse.from_message(message)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    settings = _get_settings(request)
    pool = _get_inference_pool(request)
    return HealthResponse(
        status="ok",
        gpu=settings.device == "cuda",
        classifier_loaded=_get_model_manager(request).is_loaded(),
        active_requests=pool.active_count,
    )


@router.get(
    "/models",
    response_model=ModelsResponse,
    summary="List available models",
)
async def list_models(request: Request) -> ModelsResponse:
    """Return the registered models and which one is configured."""
    settings = _get_settings(request)
    models = [
        ModelInfo(
            name=spec.name,
            labels=list(spec.labels),
            input_size=spec.input_size,
            status="active" if spec.name == settings.model_name else "available",
            license=spec.license,
        )
        for spec in MODEL_REGISTRY.values()
    ]
    return ModelsResponse(models=models)
