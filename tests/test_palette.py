"""Tests for Palette construction and queries."""

from __future__ import annotations

from pathlib import Path

from PIL import Image

from color_space import int_to_rgb
from image_decoder import create_solid_image, create_test_image, from_raw_data
from palette import Palette, PaletteEntry

RED = 0xFF0000
GREEN = 0x00FF00
BLUE = 0x0000FF
WHITE = 0xFFFFFF


def test_from_solid_image() -> None:
    palette = Palette.from_image_data(create_solid_image(2, 2, 255, 0, 0))

    assert len(palette) == 1
    assert palette.length == 1
    assert palette.most_used() == [PaletteEntry(RED, 4)]


def test_multi_color_counts() -> None:
    data = bytes([
        255, 0, 0, 255,
        0, 255, 0, 255,
        0, 0, 255, 255,
        255, 0, 0, 255,
    ])
    palette = Palette.from_image_data(from_raw_data(2, 2, data))

    assert len(palette) == 3
    assert palette.most_used(1) == [PaletteEntry(RED, 2)]
    assert palette.get(GREEN) == 1
    assert palette.get(0x123456) == 0
    assert BLUE in palette


def test_transparency_without_background() -> None:
    data = bytes([
        255, 0, 0, 255,      # opaque red
        0, 255, 0, 128,      # semi-transparent green
        0, 0, 255, 0,        # fully transparent blue
        255, 255, 255, 255,  # opaque white
    ])
    palette = Palette.from_image_data(from_raw_data(2, 2, data))

    assert dict(palette) == {RED: 1, WHITE: 1}


def test_transparency_with_background() -> None:
    data = bytes([
        255, 0, 0, 255,
        0, 255, 0, 128,
        0, 0, 255, 0,
        255, 255, 255, 255,
    ])
    palette = Palette.from_image_data(from_raw_data(2, 2, data), background=WHITE)

    assert len(palette) == 3
    assert palette.get(RED) == 1
    # Transparent blue disappears into the background
    assert palette.get(WHITE) == 2

    (blended,) = {color for color, _ in palette} - {RED, WHITE}
    r, g, b = int_to_rgb(blended)
    assert r == b
    assert 126 <= r <= 127
    assert g >= 254


def test_iteration_yields_sorted_pairs() -> None:
    palette = Palette.from_image_data(create_test_image(2, 2))

    entries = list(palette)

    assert len(entries) == len(palette)
    assert all(len(entry) == 2 for entry in entries)
    assert [color for color, _ in entries] == sorted(color for color, _ in entries)


def test_most_used_ties_keep_color_order() -> None:
    palette = Palette.from_counts({GREEN: 2, RED: 5, BLUE: 2})

    assert palette.most_used() == [
        PaletteEntry(RED, 5),
        PaletteEntry(BLUE, 2),
        PaletteEntry(GREEN, 2),
    ]


def test_from_counts_drops_non_positive() -> None:
    palette = Palette.from_counts({RED: 3, GREEN: 0})

    assert list(palette) == [(RED, 3)]


def test_empty_image() -> None:
    palette = Palette.from_image_data(from_raw_data(0, 0, b''))

    assert len(palette) == 0
    assert palette.most_used() == []


def test_fully_transparent_image() -> None:
    palette = Palette.from_solid_color(3, 3, 10, 20, 30, a=0)

    assert len(palette) == 0


def test_from_file(tmp_path: Path) -> None:
    path = tmp_path / 'half.png'
    img = Image.new('RGB', (4, 1), (0, 0, 255))
    img.putpixel((0, 0), (255, 0, 0))
    img.save(path)

    palette = Palette.from_file(path)

    assert dict(palette) == {RED: 1, BLUE: 3}


def test_from_test_image_default_size() -> None:
    palette = Palette.from_test_image()

    assert sum(count for _, count in palette) == 100
