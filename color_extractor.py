"""
Pick a small set of perceptually distinct, representative colors from a palette.

Two stages:
1. Ranking: every unique color gets a salience score from its LAB chroma,
   lightness and pixel count. Computed once per extractor and cached.
2. Merging: walk the ranking greedily, accepting a color only if no accepted
   color in the same LAB grid cell is closer than 100 / color_count.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from collections.abc import Collection
from typing import Callable, Iterable, Optional, Sequence

from color_space import LabColor, compute_chroma, delta_e, to_lab

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_MAX_CACHE_SIZE = 10_000
DEFAULT_BATCH_SIZE = 1000

GRID_SIZE = 20  # LAB units per grid cell side
AB_OFFSET = 128  # Shifts a/b into a non-negative range before bucketing
LIGHTNESS_PENALTY = 0.005
DELTA_SCALE = 100.0  # max_delta = DELTA_SCALE / color_count


@dataclass(frozen=True)
class ExtractorOptions:
    """Tuning knobs for ColorExtractor."""
    use_cache: bool = True
    max_cache_size: int = DEFAULT_MAX_CACHE_SIZE
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self):
        if self.max_cache_size < 1:
            raise ValueError(f"max_cache_size must be positive, got {self.max_cache_size}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")


# =============================================================================
# Conversion Cache
# =============================================================================

class LabCache:
    """
    Memoizes to_lab().

    When full, the whole cache is dropped before the next insert; there is
    no per-entry eviction.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_CACHE_SIZE, enabled: bool = True):
        self.max_size = max_size
        self.enabled = enabled
        self._entries: dict[int, LabColor] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, color: int) -> bool:
        return color in self._entries

    def get(self, color: int) -> LabColor:
        if not self.enabled:
            return to_lab(color)

        lab = self._entries.get(color)
        if lab is None:
            if len(self._entries) >= self.max_size:
                logger.debug("LAB cache full (%d entries), flushing", len(self._entries))
                self._entries.clear()
            lab = to_lab(color)
            self._entries[color] = lab
        return lab

    def clear(self) -> None:
        self._entries.clear()


# =============================================================================
# Salience Ranking
# =============================================================================

def compute_priority(lab: LabColor, count: int) -> float:
    """
    Salience of a color: chroma x lightness weight x sqrt(pixel count).

    Pure grays have chroma 0, which is replaced by 1 so they still rank by
    frequency.
    """
    chroma = compute_chroma(lab) or 1.0
    lightness_weight = 1 - lab.L * LIGHTNESS_PENALTY
    frequency_weight = math.sqrt(count)
    return chroma * lightness_weight * frequency_weight


async def rank_colors(entries: Iterable[tuple[int, int]],
                      lab_of: Callable[[int], LabColor] = to_lab,
                      batch_size: int = DEFAULT_BATCH_SIZE) -> list[int]:
    """
    Order colors by salience, most salient first.

    Yields to the event loop after every batch_size entries so long rankings
    don't starve other tasks. Equal priorities keep input order.

    Args:
        entries: (color, count) pairs
        lab_of: Color -> LAB lookup
        batch_size: Entries processed between yields

    Returns:
        Packed colors sorted by descending priority
    """
    priorities = []

    for index, (color, count) in enumerate(entries, 1):
        priorities.append((color, compute_priority(lab_of(color), count)))

        if index % batch_size == 0:
            await asyncio.sleep(0)

    priorities.sort(key=lambda item: item[1], reverse=True)
    return [color for color, _ in priorities]


# =============================================================================
# Spatial Merge
# =============================================================================

def grid_key(lab: LabColor, grid_size: int = GRID_SIZE) -> tuple[int, int, int]:
    """Grid cell containing a LAB color."""
    return (
        math.floor(lab.L / grid_size),
        math.floor((lab.a + AB_OFFSET) / grid_size),
        math.floor((lab.b + AB_OFFSET) / grid_size),
    )


def merge_colors(colors: Sequence[int], limit: int, max_delta: float,
                 lab_of: Callable[[int], LabColor] = to_lab) -> list[int]:
    """
    Greedily select up to `limit` mutually distinct colors.

    A candidate is dropped when an already accepted color in the same grid
    cell lies closer than max_delta. Colors in neighbouring cells are never
    compared, so two close colors straddling a cell boundary can both survive.

    Args:
        colors: Candidates, most important first
        limit: Maximum number of colors to return
        max_delta: Distance below which a candidate counts as a duplicate
        lab_of: Color -> LAB lookup

    Returns:
        Accepted colors in candidate order
    """
    actual_limit = min(len(colors), limit)
    if actual_limit <= 1:
        return list(colors[:max(actual_limit, 0)])

    result = []
    lab_colors = []
    spatial_grid: dict[tuple[int, int, int], list[int]] = {}

    for color in colors:
        if len(result) >= actual_limit:
            break

        color_lab = lab_of(color)
        key = grid_key(color_lab)
        nearby = spatial_grid.get(key, ())

        if any(delta_e(color_lab, lab_colors[i]) < max_delta for i in nearby):
            continue

        spatial_grid.setdefault(key, []).append(len(result))
        result.append(color)
        lab_colors.append(color_lab)

    logger.debug("Merged %d candidates into %d colors (limit=%d, max_delta=%.3f, cells=%d)",
                 len(colors), len(result), limit, max_delta, len(spatial_grid))
    return result


# =============================================================================
# Extractor
# =============================================================================

class ColorExtractor:
    """
    Extract representative colors from a Palette.

    The ranking and the LAB cache live on the instance and are reused by
    every extract() call until reset(). Concurrent extract() calls share a
    single ranking pass; calling reset() while that pass is running is not
    supported.

    Example:
        extractor = ColorExtractor(Palette.from_file('photo.jpg'))
        colors = await extractor.extract(5)
    """

    def __init__(self, palette: Iterable[tuple[int, int]],
                 options: Optional[ExtractorOptions] = None, **overrides):
        if options is None:
            options = ExtractorOptions(**overrides)
        elif overrides:
            raise TypeError("Pass either options or keyword overrides, not both")

        # Ranking re-reads the palette after every reset()
        if not isinstance(palette, Collection):
            palette = tuple(palette)

        self.palette = palette
        self.options = options
        self.lab_cache = LabCache(max_size=options.max_cache_size, enabled=options.use_cache)
        self._sorted_colors: Optional[list[int]] = None
        self._ranking_lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def ranked_colors(self) -> Optional[list[int]]:
        """Cached salience ranking, or None if not computed yet."""
        return self._sorted_colors

    async def extract(self, color_count: int = 1) -> list[int]:
        """
        Return up to color_count distinct representative colors.

        Args:
            color_count: Number of colors wanted (0 returns [] immediately)

        Returns:
            Packed colors, most salient first. Never more than the number of
            unique colors in the palette.
        """
        if color_count < 0:
            raise ValueError(f"color_count must be non-negative, got {color_count}")
        if color_count == 0:
            return []

        ranking = await self._ensure_ranking()
        return merge_colors(ranking, color_count, DELTA_SCALE / color_count,
                            lab_of=self.lab_cache.get)

    def extract_sync(self, color_count: int = 1) -> list[int]:
        """Blocking wrapper around extract() for callers without an event loop."""
        return asyncio.run(self.extract(color_count))

    async def _ensure_ranking(self) -> list[int]:
        if self._sorted_colors is not None:
            return self._sorted_colors

        # A lock is bound to the loop it first waits on; extract_sync() runs a new loop per call
        loop = asyncio.get_running_loop()
        if self._ranking_lock is None or self._lock_loop is not loop:
            self._ranking_lock = asyncio.Lock()
            self._lock_loop = loop

        async with self._ranking_lock:
            if self._sorted_colors is None:
                self._sorted_colors = await rank_colors(
                    self.palette, lab_of=self.lab_cache.get,
                    batch_size=self.options.batch_size,
                )
                logger.debug("Ranked %d colors", len(self._sorted_colors))
        return self._sorted_colors

    def reset(self) -> None:
        """Drop the LAB cache and the ranking; the next extract() starts over."""
        self.lab_cache.clear()
        self._sorted_colors = None
        self._ranking_lock = None
        self._lock_loop = None

    clear_cache = reset
