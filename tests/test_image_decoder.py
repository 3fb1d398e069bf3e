"""Tests for image decoding helpers."""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from image_decoder import (
    DecodeError, ImageDecodeError, MalformedInputError, create_solid_image,
    create_test_image, decode_bytes, decode_image, from_raw_data, get_pixel,
)


def test_create_test_image() -> None:
    image = create_test_image(2, 2)

    assert image.width == 2
    assert image.height == 2
    assert len(image.data) == 16
    # x=1, y=0: R = floor(0.5 * 255), G = 0, B = floor(1/4 * 255)
    assert get_pixel(image, 1, 0) == (127, 0, 63, 255)


def test_create_solid_image() -> None:
    image = create_solid_image(2, 2, 255, 0, 0)

    assert list(image.data[:4]) == [255, 0, 0, 255]
    assert image.pixels().shape == (4, 4)


def test_get_pixel() -> None:
    image = create_solid_image(2, 2, 128, 64, 32)

    assert get_pixel(image, 0, 0) == (128, 64, 32, 255)


@pytest.mark.parametrize('x, y', [(-1, 0), (2, 0), (0, 2)])
def test_get_pixel_out_of_bounds(x: int, y: int) -> None:
    image = create_test_image(2, 2)

    with pytest.raises(IndexError):
        get_pixel(image, x, y)


def test_from_raw_data_accepts_bytes() -> None:
    image = from_raw_data(1, 2, bytes([1, 2, 3, 4, 5, 6, 7, 8]))

    assert get_pixel(image, 0, 1) == (5, 6, 7, 8)


def test_from_raw_data_length_mismatch() -> None:
    with pytest.raises(MalformedInputError) as excinfo:
        from_raw_data(2, 2, bytes(15))

    assert 'expected 16, got 15' in str(excinfo.value)
    assert isinstance(excinfo.value, ValueError)


def test_decode_image_reads_png(tmp_path: Path) -> None:
    path = tmp_path / 'two.png'
    img = Image.new('RGB', (2, 1))
    img.putpixel((0, 0), (255, 0, 0))
    img.putpixel((1, 0), (0, 0, 255))
    img.save(path)

    image = decode_image(path)

    assert (image.width, image.height) == (2, 1)
    assert get_pixel(image, 0, 0) == (255, 0, 0, 255)
    assert get_pixel(image, 1, 0) == (0, 0, 255, 255)


def test_decode_image_downscales(tmp_path: Path) -> None:
    path = tmp_path / 'wide.png'
    Image.new('RGB', (100, 50), (10, 20, 30)).save(path)

    image = decode_image(path, max_dimension=20)

    assert (image.width, image.height) == (20, 10)
    assert len(image.data) == 20 * 10 * 4


def test_decode_image_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode_image(tmp_path / 'nope.png')

    assert isinstance(excinfo.value.reason, FileNotFoundError)
    assert excinfo.value.__cause__ is excinfo.value.reason


def test_decode_image_not_an_image(tmp_path: Path) -> None:
    path = tmp_path / 'notes.png'
    path.write_text('definitely not a png')

    with pytest.raises(ImageDecodeError):
        decode_image(path)


def test_decode_image_too_large(tmp_path: Path) -> None:
    path = tmp_path / 'strip.png'
    Image.new('L', (10_001, 1)).save(path)

    with pytest.raises(DecodeError, match='exceed maximum'):
        decode_image(path)


def test_decode_bytes() -> None:
    buffer = io.BytesIO()
    Image.new('RGBA', (3, 3), (1, 2, 3, 128)).save(buffer, format='PNG')

    image = decode_bytes(buffer.getvalue())

    assert image.pixel_count == 9
    assert np.all(image.pixels() == [1, 2, 3, 128])


def test_decode_bytes_garbage() -> None:
    with pytest.raises(DecodeError):
        decode_bytes(b'\x00\x01\x02')
