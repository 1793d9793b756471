"""Model manager: resolve, load and cache the waste classification model.

The model artifact is either a local ONNX file (``model_path``) or is
downloaded from the HuggingFace Hub into ``models_dir``. A single
InferenceSession is created on first use and reused for every request.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from huggingface_hub import hf_hub_download
from onnxruntime import InferenceSession, SessionOptions
from onnxruntime.capi.onnxruntime_pybind11_state import ExecutionMode

from trashtracker.errors import ModelLoadError

if TYPE_CHECKING:
    from trashtracker.config import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol (kept for test mocking)
# ---------------------------------------------------------------------------


class ModelManager(Protocol):
    """Protocol for model lifecycle management."""

    @property
    def spec(self) -> ModelSpec:
        """Return the registry entry of the configured model."""
        ...

    def ensure_downloaded(self) -> Path:
        """Ensure the model file is present locally and return its path."""
        ...

    def get_session(self) -> InferenceSession:
        """Return the cached InferenceSession, creating it if needed."""
        ...

    def is_loaded(self) -> bool:
        """Return True once a session has been created."""
        ...

    def shutdown(self) -> None:
        """Drop the cached session."""
        ...


# ---------------------------------------------------------------------------
# Model registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelSpec:
    """Static metadata for a single ONNX classification model."""

    name: str
    repo_id: str
    filename: str
    subfolder: str | None
    labels: tuple[str, ...]
    input_size: int
    license: str


MODEL_REGISTRY: dict[str, ModelSpec] = {
    "trash_tracker_1": ModelSpec(
        name="trash_tracker_1",
        repo_id="trashtracker/trash-tracker-models",
        filename="trash_tracker_1.onnx",
        subfolder=None,
        labels=("compost", "recycle", "trash"),
        input_size=224,
        license="MIT",
    ),
    "trash_tracker_1_int8": ModelSpec(
        name="trash_tracker_1_int8",
        repo_id="trashtracker/trash-tracker-models",
        filename="trash_tracker_1_int8.onnx",
        subfolder="quantized",
        labels=("compost", "recycle", "trash"),
        input_size=224,
        license="MIT",
    ),
}


# ---------------------------------------------------------------------------
# Concrete implementation
# ---------------------------------------------------------------------------


class OnnxModelManager:
    """Resolves the configured model and owns its single InferenceSession."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._spec = self._get_spec(settings.model_name)
        self._models_dir = Path(settings.models_dir)

        self._lock = threading.Lock()
        self._session: InferenceSession | None = None
        self._model_path: Path | None = None

        self._providers = self._build_providers()
        self._session_options = self._build_session_options()

    # -- Public API ---------------------------------------------------------

    @property
    def spec(self) -> ModelSpec:
        return self._spec

    def ensure_downloaded(self) -> Path:
        """Return the local model file, downloading it from the Hub if needed.

        Raises:
            ModelLoadError: If the configured path does not exist or the
                download fails.
        """
        if self._settings.model_path is not None:
            path = Path(self._settings.model_path)
            if not path.is_file():
                raise ModelLoadError(f"Model file not found: {path}")
            return path

        if self._model_path is not None and self._model_path.exists():
            return self._model_path

        self._models_dir.mkdir(parents=True, exist_ok=True)
        try:
            downloaded = Path(
                hf_hub_download(
                    repo_id=self._spec.repo_id,
                    filename=self._spec.filename,
                    subfolder=self._spec.subfolder,
                    local_dir=str(self._models_dir),
                )
            )
        except Exception as exc:
            raise ModelLoadError(f"Could not download model '{self._spec.name}': {exc}") from exc
        self._model_path = downloaded
        logger.info("Downloaded %s to %s", self._spec.name, downloaded)
        return downloaded

    def get_session(self) -> InferenceSession:
        """Return the cached InferenceSession, creating one if needed.

        Raises:
            ModelLoadError: If the model cannot be resolved or ONNX Runtime
                rejects it.
        """
        with self._lock:
            if self._session is not None:
                return self._session

        model_path = self.ensure_downloaded()
        try:
            session = InferenceSession(
                str(model_path),
                sess_options=self._session_options,
                providers=self._providers,
            )
        except Exception as exc:
            raise ModelLoadError(f"Could not load model '{self._spec.name}': {exc}") from exc

        with self._lock:
            # Double-check: another thread may have created it while we loaded.
            if self._session is not None:
                return self._session
            self._session = session
            logger.info("Loaded session for %s from %s", self._spec.name, model_path)
            return session

    def is_loaded(self) -> bool:
        with self._lock:
            return self._session is not None

    def shutdown(self) -> None:
        """Drop the cached session."""
        with self._lock:
            self._session = None
            logger.info("Model session cleared")

    # -- Internal -----------------------------------------------------------

    @staticmethod
    def _get_spec(model_name: str) -> ModelSpec:
        try:
            return MODEL_REGISTRY[model_name]
        except KeyError:
            raise KeyError(f"Unknown model: {model_name}") from None

    def _build_providers(self) -> list[str | tuple[str, dict[str, object]]]:
        device = self._settings.device
        if device == "cuda":
            return [
                ("CUDAExecutionProvider", {"device_id": 0}),
                "CPUExecutionProvider",
            ]
        if device == "openvino":
            return [
                ("OpenVINOExecutionProvider", {"device_type": "CPU"}),
                "CPUExecutionProvider",
            ]
        return ["CPUExecutionProvider"]

    def _build_session_options(self) -> SessionOptions:
        opts = SessionOptions()
        opts.intra_op_num_threads = self._settings.intra_op_threads
        opts.inter_op_num_threads = self._settings.inter_op_threads
        opts.execution_mode = ExecutionMode.ORT_SEQUENTIAL
        opts.enable_mem_pattern = True
        opts.enable_mem_reuse = True

        if self._settings.device == "openvino":
            # OpenVINO does its own graph optimization
            from onnxruntime import GraphOptimizationLevel

            opts.graph_optimization_level = GraphOptimizationLevel.ORT_DISABLE_ALL
        return opts
