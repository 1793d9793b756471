"""Image preprocessing: decode, orient, convert to RGB, resize, lay out for the model.

Accepted raw inputs are encoded image bytes, a ``PIL.Image.Image`` or an
HxWx3 / HxW uint8 numpy array (RGB order). The output is a float32 batch of
one image in the model's declared layout.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, TypeAlias

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from trashtracker.errors import PreprocessingError

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from trashtracker.config import Settings

RawImage: TypeAlias = "Image.Image | NDArray[np.uint8] | bytes | None"

Layout = Literal["nchw", "nhwc"]

# Pillow modes that convert to RGB without losing meaning.
SUPPORTED_MODES: frozenset[str] = frozenset(
    {"1", "L", "LA", "P", "PA", "RGB", "RGBA", "RGBX", "RGBa", "CMYK", "YCbCr", "LAB", "HSV"}
)


@dataclass(frozen=True)
class PreprocessedBuffer:
    """A model-ready pixel buffer.

    ``array`` has shape (1, 3, size, size) for ``nchw`` and
    (1, size, size, 3) for ``nhwc``.
    """

    array: NDArray[np.float32]
    size: int
    layout: Layout

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.array.shape)


class ImagePreprocessor:
    """Turns a RawImage into a PreprocessedBuffer for the classifier."""

    def __init__(
        self,
        size: int = 224,
        layout: Layout = "nchw",
        *,
        normalize: bool = True,
        max_image_pixels: int = 16_777_216,
        max_file_size: int = 20_971_520,
    ) -> None:
        self._size = size
        self._layout: Layout = layout
        self._normalize = normalize
        self._max_image_pixels = max_image_pixels
        self._max_file_size = max_file_size

    @classmethod
    def from_settings(cls, settings: Settings) -> ImagePreprocessor:
        return cls(
            size=settings.input_size,
            layout=settings.input_layout,
            normalize=settings.normalize,
            max_image_pixels=settings.max_image_pixels,
            max_file_size=settings.max_file_size,
        )

    @property
    def size(self) -> int:
        return self._size

    @property
    def layout(self) -> Layout:
        return self._layout

    def process(self, raw: RawImage) -> PreprocessedBuffer:
        """Resize and convert a raw image into the model's input buffer.

        Raises:
            PreprocessingError: If the image is missing, unreadable, empty,
                too large, or in a color mode that has no RGB form.
        """
        image = self.to_rgb(raw)
        resized = image.resize((self._size, self._size), Image.Resampling.BILINEAR)

        pixels = np.asarray(resized, dtype=np.float32)
        if self._normalize:
            pixels /= 255.0
        if self._layout == "nchw":
            pixels = pixels.transpose(2, 0, 1)
        batch = np.ascontiguousarray(pixels[np.newaxis, ...], dtype=np.float32)
        return PreprocessedBuffer(array=batch, size=self._size, layout=self._layout)

    def to_rgb(self, raw: RawImage) -> Image.Image:
        """Return ``raw`` as an oriented RGB Pillow image."""
        if raw is None:
            raise PreprocessingError("No image provided")

        if isinstance(raw, (bytes, bytearray)):
            image = self._decode(bytes(raw))
        elif isinstance(raw, np.ndarray):
            image = self._from_array(raw)
        elif isinstance(raw, Image.Image):
            image = raw
        else:
            raise PreprocessingError(f"Unsupported image type: {type(raw).__name__}")

        width, height = image.size
        if width == 0 or height == 0:
            raise PreprocessingError("Image has zero size")
        self._check_pixels(width, height)

        if image.mode not in SUPPORTED_MODES:
            raise PreprocessingError(f"Unsupported color mode: {image.mode}")
        try:
            return image.convert("RGB")
        except (OSError, ValueError) as exc:
            raise PreprocessingError(f"Cannot convert {image.mode} image to RGB: {exc}") from exc

    def _decode(self, data: bytes) -> Image.Image:
        if not data:
            raise PreprocessingError("Image data is empty")
        if len(data) > self._max_file_size:
            raise PreprocessingError(f"Image file too large: {len(data)} bytes exceeds {self._max_file_size}")
        try:
            image = Image.open(io.BytesIO(data))
            self._check_pixels(*image.size)
            image.load()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
            raise PreprocessingError(f"Cannot decode image: {exc}") from exc
        return ImageOps.exif_transpose(image)

    def _check_pixels(self, width: int, height: int) -> None:
        if width * height > self._max_image_pixels:
            raise PreprocessingError(f"Image too large: {width}x{height} exceeds {self._max_image_pixels} pixels")

    @staticmethod
    def _from_array(array: NDArray[np.uint8]) -> Image.Image:
        if array.size == 0:
            raise PreprocessingError("Image array is empty")
        if array.dtype != np.uint8:
            raise PreprocessingError(f"Unsupported array dtype: {array.dtype}")
        # HxW is grayscale, HxWx3 RGB, HxWx4 RGBA.
        if array.ndim == 2 or (array.ndim == 3 and array.shape[2] in (3, 4)):
            return Image.fromarray(array)
        raise PreprocessingError(f"Unsupported array shape: {array.shape}")
