"""
Count the unique colors of an image.

A Palette maps each packed RGB color found in the image to the number of
pixels that have it. Iteration yields (color, count) pairs in ascending
color order.
"""

import logging
from pathlib import Path
from typing import Iterator, Mapping, NamedTuple, Optional, Union

import numpy as np

from color_space import GREEN_SHIFT, RED_SHIFT, RGB_MAX, int_to_rgb
from image_decoder import (
    ImageData, create_solid_image, create_test_image, decode_image,
)

logger = logging.getLogger(__name__)

ALPHA_OPAQUE = 255


class PaletteEntry(NamedTuple):
    color: int
    count: int


class Palette:
    """Unique colors of an image with their pixel counts."""

    def __init__(self, colors: Optional[Mapping[int, int]] = None):
        self._colors: dict[int, int] = {}
        if colors:
            for color, count in sorted(colors.items()):
                if count > 0:
                    self._colors[int(color)] = int(count)

    @property
    def length(self) -> int:
        return len(self._colors)

    def __len__(self) -> int:
        return len(self._colors)

    def __iter__(self) -> Iterator[tuple[int, int]]:
        return iter(self._colors.items())

    def __contains__(self, color: int) -> bool:
        return color in self._colors

    def __repr__(self) -> str:
        return f"Palette({len(self)} colors)"

    def get(self, color: int) -> int:
        """Pixel count for a color, 0 if absent."""
        return self._colors.get(color, 0)

    def most_used(self, limit: Optional[int] = None) -> list[PaletteEntry]:
        """
        Return entries by pixel count descending.

        Ties keep ascending color order. A falsy limit returns everything.
        """
        entries = [PaletteEntry(color, count) for color, count in self._colors.items()]
        entries.sort(key=lambda e: e.count, reverse=True)
        return entries[:limit] if limit else entries

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def from_counts(cls, counts: Mapping[int, int]) -> 'Palette':
        return cls(counts)

    @classmethod
    def from_image_data(cls, image: ImageData, background: Optional[int] = None) -> 'Palette':
        """
        Build a palette from decoded RGBA pixels.

        Args:
            image: Decoded image
            background: Packed color to composite translucent pixels onto.
                Without it, any pixel that is not fully opaque is skipped.
        """
        if image.width == 0 or image.height == 0:
            return cls()

        pixels = image.pixels()
        alpha = pixels[:, 3]
        opaque = alpha == ALPHA_OPAQUE

        if background is None:
            rgb = pixels[opaque, :3].astype(np.int64)
        else:
            bg = np.array(int_to_rgb(background), dtype=np.float64)
            alpha_ratio = (alpha / RGB_MAX)[:, None]
            inv_alpha_ratio = 1 - alpha_ratio
            blended = np.floor(pixels[:, :3] * alpha_ratio + bg * inv_alpha_ratio)
            rgb = np.where(opaque[:, None], pixels[:, :3], blended).astype(np.int64)

        if len(rgb) == 0:
            return cls()

        packed = (rgb[:, 0] << RED_SHIFT) | (rgb[:, 1] << GREEN_SHIFT) | rgb[:, 2]
        colors, counts = np.unique(packed, return_counts=True)

        palette = cls()
        palette._colors = {int(c): int(n) for c, n in zip(colors, counts)}
        logger.debug("Built palette: %d unique colors from %d pixels",
                     len(palette), image.pixel_count)
        return palette

    @classmethod
    def from_file(cls, image_path: Union[str, Path], background: Optional[int] = None,
                  max_dimension: Optional[int] = None) -> 'Palette':
        """Decode an image file and count its colors."""
        image = decode_image(image_path, max_dimension=max_dimension)
        return cls.from_image_data(image, background)

    @classmethod
    def from_test_image(cls, width: int = 10, height: int = 10,
                        background: Optional[int] = None) -> 'Palette':
        return cls.from_image_data(create_test_image(width, height), background)

    @classmethod
    def from_solid_color(cls, width: int, height: int, r: int, g: int, b: int,
                         a: int = ALPHA_OPAQUE) -> 'Palette':
        return cls.from_image_data(create_solid_image(width, height, r, g, b, a))
