"""
Decode images into flat RGBA pixel buffers.

Everything downstream (palette building) works on ImageData: width, height and
a uint8 array of width * height * 4 bytes in row-major RGBA order.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

RGBA_CHANNELS = 4
MAX_RGB_VALUE = 255

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side


class ImageDecodeError(ValueError):
    """Base class for decoder failures."""


class DecodeError(ImageDecodeError):
    """An image could not be read or its dimensions could not be determined."""

    def __init__(self, message: str, reason: Optional[BaseException] = None):
        super().__init__(message)
        self.reason = reason


class MalformedInputError(ImageDecodeError):
    """A raw pixel buffer does not match its declared dimensions."""


@dataclass
class ImageData:
    """Decoded RGBA pixels."""
    width: int
    height: int
    data: np.ndarray  # flat uint8, length width * height * 4

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def pixels(self) -> np.ndarray:
        """Return the buffer as an (n_pixels, 4) view."""
        return self.data.reshape(-1, RGBA_CHANNELS)


def _open_rgba(img: Image.Image, source: str, max_dimension: Optional[int]) -> ImageData:
    width, height = img.size
    if width == 0 or height == 0:
        raise DecodeError(f"Could not determine dimensions of {source}")

    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise DecodeError(
            f"Image dimensions {width}x{height} exceed maximum "
            f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise DecodeError(
            f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
        )

    try:
        img = img.convert('RGBA')
        if max_dimension and max(img.size) > max_dimension:
            img.thumbnail((max_dimension, max_dimension))
            logger.debug("Downscaled %s from %dx%d to %dx%d",
                         source, width, height, *img.size)
        pixels = np.asarray(img, dtype=np.uint8)
    except (OSError, ValueError) as e:
        raise DecodeError(f"Could not decode {source}: {e}", e) from e

    h, w = pixels.shape[:2]
    return ImageData(width=w, height=h, data=pixels.reshape(-1).copy())


def decode_image(image_path: Union[str, Path], max_dimension: Optional[int] = None) -> ImageData:
    """
    Load an image file as RGBA.

    Args:
        image_path: Path to the image file
        max_dimension: If set, downscale so the longest side is at most this

    Raises:
        DecodeError: If the file is missing, unreadable, or exceeds size limits
    """
    try:
        img = Image.open(image_path)
    except FileNotFoundError as e:
        raise DecodeError(f"Image not found: {image_path}", e) from e
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise DecodeError(f"Could not open image {image_path}: {e}", e) from e

    with img:
        return _open_rgba(img, str(image_path), max_dimension)


def decode_bytes(buffer: bytes, max_dimension: Optional[int] = None) -> ImageData:
    """Decode an encoded image (PNG, JPEG, ...) held in memory."""
    try:
        img = Image.open(io.BytesIO(buffer))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise DecodeError(f"Could not open image buffer: {e}", e) from e

    with img:
        return _open_rgba(img, '<buffer>', max_dimension)


def from_raw_data(width: int, height: int, data) -> ImageData:
    """
    Wrap an existing RGBA byte buffer.

    Raises:
        MalformedInputError: If len(data) != width * height * 4
    """
    expected_length = width * height * RGBA_CHANNELS
    if len(data) != expected_length:
        raise MalformedInputError(
            f"Invalid data length: expected {expected_length}, got {len(data)}"
        )
    if isinstance(data, (bytes, bytearray, memoryview)):
        pixels = np.frombuffer(data, dtype=np.uint8)
    else:
        pixels = np.asarray(data, dtype=np.uint8).reshape(-1)
    return ImageData(width=width, height=height, data=pixels)


def create_test_image(width: int, height: int) -> ImageData:
    """Create an opaque gradient image: red varies with x, green with y, blue with x + y."""
    ys, xs = np.mgrid[0:height, 0:width]
    data = np.empty((height, width, RGBA_CHANNELS), dtype=np.uint8)
    data[..., 0] = np.floor(xs / width * MAX_RGB_VALUE).astype(np.uint8)
    data[..., 1] = np.floor(ys / height * MAX_RGB_VALUE).astype(np.uint8)
    data[..., 2] = np.floor((xs + ys) / (width + height) * MAX_RGB_VALUE).astype(np.uint8)
    data[..., 3] = MAX_RGB_VALUE
    return ImageData(width=width, height=height, data=data.reshape(-1))


def create_solid_image(width: int, height: int, r: int, g: int, b: int,
                       a: int = MAX_RGB_VALUE) -> ImageData:
    data = np.tile(np.array([r, g, b, a], dtype=np.uint8), width * height)
    return ImageData(width=width, height=height, data=data)


def get_pixel(image: ImageData, x: int, y: int) -> tuple[int, int, int, int]:
    """Return the (r, g, b, a) value at column x, row y."""
    if x < 0 or y < 0 or x >= image.width or y >= image.height:
        raise IndexError(f"Coordinates out of bounds: ({x}, {y})")

    index = (y * image.width + x) * RGBA_CHANNELS
    r, g, b, a = image.data[index:index + RGBA_CHANNELS]
    return int(r), int(g), int(b), int(a)
