"""One classification request: preprocess, classify, resolve."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from trashtracker.core.messages import ERROR_PREFIX, PREPROCESSING_FAILED, DisplayMessage, error_message, resolve
from trashtracker.errors import InferenceError, ModelLoadError, PreprocessingError

if TYPE_CHECKING:
    from trashtracker.ml.image_classifier import ImageClassifier
    from trashtracker.ml.preprocessing import ImagePreprocessor, RawImage

logger = logging.getLogger(__name__)


class ClassificationPipeline:
    """Turns a raw image into the message shown on the result screen.

    Every failure ends the request with an error message; nothing is retried.
    """

    def __init__(self, preprocessor: ImagePreprocessor, classifier: ImageClassifier) -> None:
        self._preprocessor = preprocessor
        self._classifier = classifier

    def run(self, raw: RawImage) -> DisplayMessage:
        try:
            buffer = self._preprocessor.process(raw)
        except PreprocessingError as exc:
            logger.warning("Preprocessing failed: %s", exc)
            return error_message(PREPROCESSING_FAILED)

        try:
            label = self._classifier.classify(buffer)
        except ModelLoadError as exc:
            logger.error("Model unavailable: %s", exc)
            return error_message(f"{ERROR_PREFIX}{exc}")
        except InferenceError as exc:
            logger.warning("Inference failed: %s", exc)
            return error_message(f"{ERROR_PREFIX}{exc}")

        logger.info("Classified image as %r", label)
        return resolve(label)
