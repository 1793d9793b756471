"""Image sources: camera capture, library selection and client uploads.

Every source yields a single RawImage or raises AcquisitionCancelled when the
user backs out. A source that fails to produce pixels returns ``None`` and
leaves rejection to the preprocessor.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import cv2

from trashtracker.errors import AcquisitionCancelled

if TYPE_CHECKING:
    from trashtracker.ml.preprocessing import RawImage

logger = logging.getLogger(__name__)


class ImageSource(Protocol):
    """Protocol for anything that can hand over one image."""

    def acquire(self) -> RawImage:
        """Return the captured or selected image.

        Raises:
            AcquisitionCancelled: If the user dismissed the source.
        """
        ...


class UploadImageSource:
    """Encoded image bytes sent by a client; ``None`` means the client cancelled."""

    def __init__(self, data: bytes | None) -> None:
        self._data = data

    def acquire(self) -> RawImage:
        if self._data is None:
            raise AcquisitionCancelled("Upload cancelled")
        return self._data


class FileImageSource:
    """A photo picked from the library, given as a file path.

    A ``None`` path is a dismissed picker.
    """

    def __init__(self, path: str | Path | None) -> None:
        self._path = Path(path) if path is not None else None

    def acquire(self) -> RawImage:
        if self._path is None:
            raise AcquisitionCancelled("No photo selected")
        try:
            return self._path.read_bytes()
        except OSError as exc:
            logger.warning("Could not read %s: %s", self._path, exc)
            return None


class CameraImageSource:
    """Grabs a single frame from a camera through OpenCV."""

    def __init__(self, device: int = 0, resolution: tuple[int, int] | None = None) -> None:
        self._device = device
        self._resolution = resolution

    def acquire(self) -> RawImage:
        cap = cv2.VideoCapture(self._device)
        try:
            if not cap.isOpened():
                logger.warning("Camera %s is not available", self._device)
                return None
            if self._resolution is not None:
                width, height = self._resolution
                cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
                cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

            ok, frame = cap.read()
            if not ok or frame is None:
                logger.warning("Camera %s returned no frame", self._device)
                return None
            return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        finally:
            cap.release()
