"""Waste category classification on top of an ONNX Runtime session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import numpy as np

from trashtracker.errors import InferenceError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from trashtracker.ml.model_manager import ModelManager
    from trashtracker.ml.preprocessing import PreprocessedBuffer

logger = logging.getLogger(__name__)


class ImageClassifier(Protocol):
    """Protocol for image classification models."""

    @property
    def model_name(self) -> str:
        """Return the model identifier string."""
        ...

    def classify(self, buffer: PreprocessedBuffer) -> str:
        """Predict the waste category label of a preprocessed image.

        Args:
            buffer: Model-ready pixel buffer.

        Returns:
            The predicted label, e.g. ``"trash"``.

        Raises:
            ModelLoadError: If the model cannot be loaded.
            InferenceError: If the prediction call fails.
        """
        ...


class OnnxImageClassifier:
    """Runs the waste model held by a ModelManager.

    The model either emits the label directly as a string tensor or emits
    one score per class, in which case the label is looked up in the
    model's registered label list.
    """

    def __init__(self, model_manager: ModelManager) -> None:
        self._model_manager = model_manager
        self._labels: tuple[str, ...] = model_manager.spec.labels

    @property
    def model_name(self) -> str:
        return self._model_manager.spec.name

    def load(self) -> None:
        """Create the underlying session now instead of on first use."""
        self._model_manager.get_session()

    def classify(self, buffer: PreprocessedBuffer) -> str:
        session = self._model_manager.get_session()

        model_input = session.get_inputs()[0]
        if not _shape_matches(model_input.shape, buffer.shape):
            raise InferenceError(f"Input shape {buffer.shape} does not match model input {list(model_input.shape)}")

        try:
            outputs = session.run(None, {model_input.name: buffer.array})
        except Exception as exc:
            raise InferenceError(str(exc)) from exc
        if not outputs:
            raise InferenceError("Model returned no outputs")

        label = self._decode_output(np.asarray(outputs[0]))
        logger.debug("Predicted %r with %s", label, self.model_name)
        return label

    def _decode_output(self, output: NDArray[np.generic]) -> str:
        if output.size == 0:
            raise InferenceError("Model returned an empty prediction")

        if output.dtype.kind in ("U", "S", "O"):
            value = output.ravel()[0]
            if isinstance(value, bytes):
                return value.decode("utf-8")
            return str(value)

        if output.dtype.kind in ("i", "u"):
            # Integer output is the predicted class index itself.
            index = int(output.ravel()[0])
        else:
            index = int(np.argmax(output.reshape(-1)))
        if not 0 <= index < len(self._labels):
            raise InferenceError(f"Predicted class index {index} has no label ({len(self._labels)} known)")
        return self._labels[index]


def _shape_matches(declared: Sequence[int | str | None], actual: tuple[int, ...]) -> bool:
    """Compare a model's declared input shape with a concrete one.

    Symbolic or unknown dimensions (strings or None) match any size.
    """
    if len(declared) != len(actual):
        return False
    return all(not isinstance(dim, int) or dim == size for dim, size in zip(declared, actual, strict=True))
