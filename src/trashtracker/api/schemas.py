"""Pydantic response schemas for the TrashTracker API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from trashtracker.core.controller import PresentationController
    from trashtracker.core.messages import DisplayMessage


class Emphasis(BaseModel):
    """Character range of the message to render highlighted."""

    start: int = Field(ge=0)
    end: int = Field(ge=0)


class MessageResponse(BaseModel):
    """A resolved message for the result screen."""

    text: str
    emphasis: list[Emphasis]
    label: str | None = Field(default=None, description="Raw predicted label; null for error messages")
    is_error: bool = False

    @classmethod
    def from_message(cls, message: DisplayMessage) -> MessageResponse:
        return cls(
            text=message.text,
            emphasis=[Emphasis(start=span.start, end=span.end) for span in message.emphasis],
            label=message.label,
            is_error=message.is_error,
        )


class ScreenResponse(BaseModel):
    """Current screen of the app."""

    state: str = Field(description="Screen state: 'prompt', 'capturing', or 'result'")
    message: MessageResponse | None = None
    pending: bool = Field(default=False, description="True while a photo is being classified")

    @classmethod
    def from_controller(cls, controller: PresentationController) -> ScreenResponse:
        message = controller.message
        return cls(
            state=controller.state.value,
            message=MessageResponse.from_message(message) if message is not None else None,
            pending=controller.pending is not None,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    gpu: bool
    classifier_loaded: bool
    active_requests: int


class ModelInfo(BaseModel):
    """Information about an available model."""

    name: str
    labels: list[str]
    input_size: int
    status: str = Field(description="Model status: 'active' or 'available'")
    license: str


class ModelsResponse(BaseModel):
    """Response for the models listing endpoint."""

    models: list[ModelInfo]


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
