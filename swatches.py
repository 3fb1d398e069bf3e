"""
Render extracted colors as a swatch strip.
"""

import logging
from pathlib import Path
from typing import Sequence, Union

from PIL import Image, ImageDraw

from color_space import int_to_hex, int_to_rgb

logger = logging.getLogger(__name__)

BACKGROUND = (240, 240, 240)
TEXT_COLOR = (0, 0, 0)


def render_swatches(colors: Sequence[int], output_path: Union[str, Path],
                    swatch_size: int = 80, max_cols: int = 6) -> Image.Image:
    """
    Draw one square per color with its hex code underneath.

    Args:
        colors: Packed colors, drawn left to right, top to bottom
        output_path: Where to save the PNG
        swatch_size: Side of each square in pixels
        max_cols: Squares per row

    Returns:
        The rendered image
    """
    if not colors:
        raise ValueError("No colors to render")

    padding = 10
    text_height = 25
    cols = min(len(colors), max_cols)
    rows = (len(colors) + cols - 1) // cols

    img_width = cols * (swatch_size + padding) + padding
    img_height = rows * (swatch_size + text_height + padding) + padding

    img = Image.new('RGB', (img_width, img_height), BACKGROUND)
    draw = ImageDraw.Draw(img)

    for i, color in enumerate(colors):
        row = i // cols
        col = i % cols

        x = padding + col * (swatch_size + padding)
        y = padding + row * (swatch_size + text_height + padding)

        draw.rectangle([x, y, x + swatch_size, y + swatch_size], fill=tuple(int_to_rgb(color)))

        # Center label under swatch
        text = int_to_hex(color)
        bbox = draw.textbbox((0, 0), text)
        text_width = bbox[2] - bbox[0]
        text_x = x + (swatch_size - text_width) // 2
        draw.text((text_x, y + swatch_size + 4), text, fill=TEXT_COLOR)

    img.save(output_path)
    logger.debug("Saved %d swatches to %s", len(colors), output_path)
    return img
