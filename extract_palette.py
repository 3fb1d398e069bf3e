#!/usr/bin/env python3
"""Extract representative colors from one image or a directory of images."""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from color_extractor import ColorExtractor, ExtractorOptions
from color_space import hex_to_int, int_to_hex
from palette import Palette
from swatches import render_swatches

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.bmp', '.gif'}
DOWNSCALE_SIZE = 256


def find_images(path: Path) -> list[Path]:
    """A single file, or all image files directly inside a directory."""
    if path.is_file():
        return [path]
    return sorted(p for p in path.iterdir() if p.suffix.lower() in IMAGE_EXTENSIONS)


async def extract_from_file(image_path: Path, color_count: int, options: ExtractorOptions,
                            background: Optional[int] = None,
                            max_dimension: Optional[int] = DOWNSCALE_SIZE) -> list[int]:
    """Decode an image, build its palette and extract color_count colors."""
    palette = Palette.from_file(image_path, background=background, max_dimension=max_dimension)
    logger.info("%s: %d unique colors", image_path.name, len(palette))
    extractor = ColorExtractor(palette, options)
    return await extractor.extract(color_count)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Extract representative colors from images.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Image file or directory containing images'
    )
    parser.add_argument(
        '--colors', '-n',
        type=int,
        default=5,
        help='Number of colors to extract (default: 5)'
    )
    parser.add_argument(
        '--output', '-o',
        help='Directory for swatch PNGs (not written if omitted)'
    )
    parser.add_argument(
        '--background', '-b',
        help='Hex color to composite transparent pixels onto; '
             'without it non-opaque pixels are ignored'
    )
    parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable the LAB conversion cache'
    )
    parser.add_argument(
        '--max-cache-size',
        type=int,
        default=ExtractorOptions.max_cache_size,
        help='Entries held in the LAB cache before it is flushed'
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=ExtractorOptions.batch_size,
        help='Colors ranked between event loop yields'
    )
    parser.add_argument(
        '--no-downscale',
        action='store_true',
        help=f'Process at full resolution instead of downscaling to {DOWNSCALE_SIZE}px'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    if args.colors < 0:
        print(f"Error: --colors must be non-negative, got {args.colors}", file=sys.stderr)
        return 2

    try:
        options = ExtractorOptions(
            use_cache=not args.no_cache,
            max_cache_size=args.max_cache_size,
            batch_size=args.batch_size,
        )
        background = hex_to_int(args.background) if args.background else None
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input not found: {input_path}", file=sys.stderr)
        return 2

    images = find_images(input_path)
    if not images:
        print(f"No images found in {input_path}", file=sys.stderr)
        return 2

    output_dir = Path(args.output) if args.output else None
    if output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)

    max_dimension = None if args.no_downscale else DOWNSCALE_SIZE
    total = len(images)
    failed = []
    batch_start = time.perf_counter()

    for i, image_path in enumerate(images, 1):
        try:
            img_start = time.perf_counter()
            colors = asyncio.run(extract_from_file(
                image_path, args.colors, options,
                background=background, max_dimension=max_dimension,
            ))
            img_elapsed = time.perf_counter() - img_start

            hex_colors = ' '.join(int_to_hex(c) for c in colors)
            print(f"[{i}/{total}] {image_path.name} → {hex_colors or '(none)'} ({img_elapsed:.2f}s)")

            if output_dir and colors:
                output_file = output_dir / f"{image_path.stem}-palette.png"
                if output_file.exists():
                    print(f"  Warning: Overwriting {output_file.name}", file=sys.stderr)
                render_swatches(colors, output_file)

        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            print(f"[{i}/{total}] {image_path.name} → ERROR: {error_msg}", file=sys.stderr)
            logger.debug("Failed on %s", image_path, exc_info=True)
            failed.append((image_path.name, error_msg))

    batch_elapsed = time.perf_counter() - batch_start

    if total > 1:
        print()
        print(f"Completed: {total - len(failed)}/{total} succeeded in {batch_elapsed:.2f}s")
    if failed:
        if total > 1:
            print(f"Failed ({len(failed)}):")
            for name, error in failed:
                print(f"  - {name}: {error}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
