"""Environment-based configuration for TrashTracker."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from TRASHTRACKER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRASHTRACKER_",
        case_sensitive=False,
        protected_namespaces=(),
    )

    # Authentication (None = disabled)
    api_key: str | None = None

    # ML device
    device: Literal["cpu", "cuda", "openvino"] = "cpu"

    # Model selection
    model_name: str = "trash_tracker_1"
    model_path: str | None = None
    models_dir: str = "models"
    preload_model: bool = False

    # ONNX Runtime threading
    intra_op_threads: int = Field(default=0, ge=0)
    inter_op_threads: int = Field(default=1, ge=1)

    # Model input contract
    input_size: int = Field(default=224, ge=1)
    input_layout: Literal["nchw", "nhwc"] = "nchw"
    normalize: bool = True

    # Input limits
    max_image_pixels: int = Field(default=16_777_216, ge=1)
    max_file_size: int = Field(default=20_971_520, ge=1)

    # Camera
    camera_device: int = Field(default=0, ge=0)


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
