"""Tests for the ONNX image classifier."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np
import pytest

from trashtracker.errors import InferenceError, ModelLoadError
from trashtracker.ml.image_classifier import OnnxImageClassifier, _shape_matches
from trashtracker.ml.model_manager import MODEL_REGISTRY
from trashtracker.ml.preprocessing import PreprocessedBuffer

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_buffer(layout: str = "nchw") -> PreprocessedBuffer:
    shape = (1, 3, 224, 224) if layout == "nchw" else (1, 224, 224, 3)
    return PreprocessedBuffer(array=np.zeros(shape, dtype=np.float32), size=224, layout=layout)  # type: ignore[arg-type]


def _make_manager(output: object, input_shape: list[object] | None = None) -> MagicMock:
    session = MagicMock()
    session.get_inputs.return_value = [
        SimpleNamespace(name="image", shape=input_shape if input_shape is not None else ["batch", 3, 224, 224])
    ]
    session.run.return_value = [output]

    manager = MagicMock()
    manager.spec = MODEL_REGISTRY["trash_tracker_1"]
    manager.get_session.return_value = session
    return manager


# ---------------------------------------------------------------------------
# OnnxImageClassifier tests
# ---------------------------------------------------------------------------


class TestOnnxImageClassifier:
    def test_string_output_is_label(self) -> None:
        manager = _make_manager(np.array(["Trash"], dtype=object))
        classifier = OnnxImageClassifier(manager)

        assert classifier.classify(_make_buffer()) == "Trash"

    def test_bytes_output_is_decoded(self) -> None:
        manager = _make_manager(np.array([b"compost"], dtype=object))
        assert OnnxImageClassifier(manager).classify(_make_buffer()) == "compost"

    def test_scores_use_registry_labels(self) -> None:
        manager = _make_manager(np.array([[0.1, 0.7, 0.2]], dtype=np.float32))
        assert OnnxImageClassifier(manager).classify(_make_buffer()) == "recycle"

    def test_feeds_buffer_under_input_name(self) -> None:
        manager = _make_manager(np.array(["trash"], dtype=object))
        buffer = _make_buffer()
        OnnxImageClassifier(manager).classify(buffer)

        session = manager.get_session.return_value
        args, _ = session.run.call_args
        assert args[0] is None
        assert args[1]["image"] is buffer.array

    def test_same_buffer_same_label(self) -> None:
        manager = _make_manager(np.array([[0.9, 0.05, 0.05]], dtype=np.float32))
        classifier = OnnxImageClassifier(manager)
        buffer = _make_buffer()
        assert classifier.classify(buffer) == classifier.classify(buffer) == "compost"

    def test_model_name(self) -> None:
        manager = _make_manager(np.array(["trash"], dtype=object))
        assert OnnxImageClassifier(manager).model_name == "trash_tracker_1"

    def test_load_creates_session(self) -> None:
        manager = _make_manager(np.array(["trash"], dtype=object))
        OnnxImageClassifier(manager).load()
        manager.get_session.assert_called_once()

    def test_shape_mismatch_raises(self) -> None:
        manager = _make_manager(np.array(["trash"], dtype=object))
        with pytest.raises(InferenceError, match="does not match"):
            OnnxImageClassifier(manager).classify(_make_buffer(layout="nhwc"))

    def test_run_failure_raises_inference_error(self) -> None:
        manager = _make_manager(None)
        manager.get_session.return_value.run.side_effect = RuntimeError("bad tensor")
        with pytest.raises(InferenceError, match="bad tensor"):
            OnnxImageClassifier(manager).classify(_make_buffer())

    def test_empty_output_raises(self) -> None:
        manager = _make_manager(np.array([], dtype=np.float32))
        with pytest.raises(InferenceError, match="empty"):
            OnnxImageClassifier(manager).classify(_make_buffer())

    def test_integer_output_is_class_index(self) -> None:
        manager = _make_manager(np.array([2], dtype=np.int64))
        assert OnnxImageClassifier(manager).classify(_make_buffer()) == "trash"

    def test_unsigned_output_is_class_index(self) -> None:
        manager = _make_manager(np.array([[1]], dtype=np.uint8))
        assert OnnxImageClassifier(manager).classify(_make_buffer()) == "recycle"

    @pytest.mark.parametrize("index", [3, -1])
    def test_integer_index_out_of_range_raises(self, index: int) -> None:
        manager = _make_manager(np.array([index], dtype=np.int64))
        with pytest.raises(InferenceError, match="no label"):
            OnnxImageClassifier(manager).classify(_make_buffer())

    def test_index_without_label_raises(self) -> None:
        manager = _make_manager(np.array([[0.0, 0.0, 0.0, 1.0]], dtype=np.float32))
        with pytest.raises(InferenceError, match="no label"):
            OnnxImageClassifier(manager).classify(_make_buffer())

    def test_model_load_error_propagates(self) -> None:
        manager = _make_manager(None)
        manager.get_session.side_effect = ModelLoadError("Model file not found: x.onnx")
        with pytest.raises(ModelLoadError):
            OnnxImageClassifier(manager).classify(_make_buffer())


class TestShapeMatches:
    def test_symbolic_dims_match(self) -> None:
        assert _shape_matches(["N", 3, None, 224], (1, 3, 224, 224))

    def test_fixed_dims_must_match(self) -> None:
        assert not _shape_matches([1, 3, 256, 256], (1, 3, 224, 224))

    def test_rank_must_match(self) -> None:
        assert not _shape_matches([3, 224, 224], (1, 3, 224, 224))
