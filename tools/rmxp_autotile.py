#!/usr/bin/env python3
"""
rmxp_autotile.py - Expand an RPG Maker XP ground autotile into a 48-tile blob tileset.

Source sheet layout (tileW x tileH tiles):
  - 3x4 full tiles => (tileW*3) x (tileH*4)
  - internally 6x8 subtiles of (tileW/2) x (tileH/2), indexed 0..47 row-major

Output:
  - 8x6 full tiles => (tileW*8) x (tileH*6), tile id = row*8 + col
  - every tile is assembled from four subtiles [TL, TR, BL, BR] picked by RMXP_CASES

Shared by expand_autotile.py, expand_autotile_all.py and watch_autotiles.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError


SHEET_COLS = 3
SHEET_ROWS = 4
SUBTILE_COLS = SHEET_COLS * 2
SUBTILE_ROWS = SHEET_ROWS * 2
SUBTILE_COUNT = SUBTILE_COLS * SUBTILE_ROWS

OUT_COLS = 8
OUT_ROWS = 6
TILE_COUNT = OUT_COLS * OUT_ROWS

MIN_TILE_SIZE = 2

# [TL, TR, BL, BR] subtile indices per output tile id.
# Entry 47 repeats entry 46; downstream maps rely on this tile ordering.
RMXP_CASES: Tuple[Tuple[int, int, int, int], ...] = (
    (26, 27, 32, 33), (4, 27, 32, 33), (26, 5, 32, 33), (4, 5, 32, 33),
    (26, 27, 32, 11), (4, 27, 32, 11), (26, 5, 32, 11), (4, 5, 32, 11),
    (26, 27, 10, 33), (4, 27, 10, 33), (26, 5, 10, 33), (4, 5, 10, 33),
    (26, 27, 10, 11), (4, 27, 10, 11), (26, 5, 10, 11), (4, 5, 10, 11),
    (24, 25, 30, 31), (24, 5, 30, 31), (24, 25, 30, 11), (24, 5, 30, 11),
    (14, 15, 20, 21), (14, 15, 20, 11), (14, 15, 10, 21), (14, 15, 10, 11),
    (28, 29, 34, 35), (28, 29, 10, 35), (4, 29, 34, 35), (4, 29, 10, 35),
    (26, 27, 44, 45), (4, 39, 44, 45), (38, 5, 44, 45), (4, 5, 44, 45),
    (24, 29, 30, 35), (14, 15, 44, 45), (12, 13, 18, 19), (12, 13, 18, 11),
    (16, 17, 22, 23), (16, 17, 10, 23), (40, 41, 46, 47), (4, 41, 46, 47),
    (36, 37, 42, 43), (36, 5, 42, 43), (12, 17, 18, 23), (12, 13, 42, 43),
    (36, 41, 42, 47), (16, 17, 46, 47), (12, 17, 42, 47), (12, 17, 42, 47),
)

QUADRANTS = ("TL", "TR", "BL", "BR")


class AutotileError(Exception):
    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path
        self.message = message


class InvalidTileSize(AutotileError):
    def __init__(self, tile_w, tile_h, path: str = ""):
        super().__init__(
            f"RMXP autotiles require an even tile size of at least {MIN_TILE_SIZE}px "
            f"(they are split into 2x2 subtiles), got {tile_w}x{tile_h}",
            path,
        )
        self.tile_w = tile_w
        self.tile_h = tile_h


class SourceSizeMismatch(AutotileError):
    def __init__(self, expected: Tuple[int, int], actual: Tuple[int, int], tile_size: Tuple[int, int], path: str = ""):
        ew, eh = expected
        aw, ah = actual
        tw, th = tile_size
        super().__init__(
            "This does not look like an RPG Maker XP autotile. "
            f"Expected size: {ew}x{eh} ({SHEET_COLS}x{SHEET_ROWS} tiles of {tw}x{th}), "
            f"got: {aw}x{ah}. For 32x32 tiles the file must be 96x128.",
            path,
        )
        self.expected = expected
        self.actual = actual


class SourceUnreadable(AutotileError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read source image: {reason}", path)
        self.reason = reason


class OutputWriteFailed(AutotileError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to write output file: {reason}", path)
        self.reason = reason


@dataclass(frozen=True)
class ExpandedAutotile:
    image: Image.Image
    tile_w: int
    tile_h: int
    transparent_color: Optional[Tuple[int, int, int]] = None
    columns: int = OUT_COLS
    tile_count: int = TILE_COUNT

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size


def validate_tile_size(tile_w: int, tile_h: int) -> None:
    for v in (tile_w, tile_h):
        if isinstance(v, bool) or not isinstance(v, (int, np.integer)):
            raise InvalidTileSize(tile_w, tile_h)
        if v < MIN_TILE_SIZE or v % 2 != 0:
            raise InvalidTileSize(tile_w, tile_h)


def expected_source_size(tile_w: int, tile_h: int) -> Tuple[int, int]:
    return tile_w * SHEET_COLS, tile_h * SHEET_ROWS


def output_size(tile_w: int, tile_h: int) -> Tuple[int, int]:
    return tile_w * OUT_COLS, tile_h * OUT_ROWS


def validate_source_size(tile_w: int, tile_h: int, src_w: int, src_h: int) -> None:
    expected = expected_source_size(tile_w, tile_h)
    if (src_w, src_h) != expected:
        raise SourceSizeMismatch(expected, (src_w, src_h), (tile_w, tile_h))


def subtile_origin(index: int, sub_w: int, sub_h: int) -> Tuple[int, int]:
    if not (0 <= index < SUBTILE_COUNT):
        raise IndexError(f"Subtile index out of range 0..{SUBTILE_COUNT - 1}: {index}")
    return (index % SUBTILE_COLS) * sub_w, (index // SUBTILE_COLS) * sub_h


def tile_origin(tid: int, tile_w: int, tile_h: int) -> Tuple[int, int]:
    return (tid % OUT_COLS) * tile_w, (tid // OUT_COLS) * tile_h


def quadrant_offsets(sub_w: int, sub_h: int) -> List[Tuple[int, int]]:
    # same order as a case entry: TL, TR, BL, BR
    return [(0, 0), (sub_w, 0), (0, sub_h), (sub_w, sub_h)]


def compose(src: np.ndarray, tile_w: int, tile_h: int) -> np.ndarray:
    """Assemble the 8x6 output grid from a (H, W) or (H, W, C) source array.

    Blocks are copied verbatim, so every channel (alpha included) keeps its
    exact value. The source array is never written to.
    """
    validate_tile_size(tile_w, tile_h)
    validate_source_size(tile_w, tile_h, src.shape[1], src.shape[0])

    sub_w = tile_w // 2
    sub_h = tile_h // 2
    out_w, out_h = output_size(tile_w, tile_h)
    out = np.zeros((out_h, out_w) + src.shape[2:], dtype=src.dtype)

    quads = quadrant_offsets(sub_w, sub_h)
    for tid, case in enumerate(RMXP_CASES):
        ox, oy = tile_origin(tid, tile_w, tile_h)
        for (qx, qy), index in zip(quads, case):
            sx, sy = subtile_origin(index, sub_w, sub_h)
            dx = ox + qx
            dy = oy + qy
            out[dy:dy + sub_h, dx:dx + sub_w] = src[sy:sy + sub_h, sx:sx + sub_w]
    return out


def _image_from_array(arr: np.ndarray, like: Image.Image) -> Image.Image:
    if like.mode == "1":
        img = Image.fromarray(arr)
    else:
        img = Image.frombytes(like.mode, (arr.shape[1], arr.shape[0]), arr.tobytes())
    if like.mode in ("P", "PA"):
        palette = like.getpalette()
        if palette is not None:
            img.putpalette(palette)
    if "transparency" in like.info:
        img.info["transparency"] = like.info["transparency"]
    return img


def expand_image(img: Image.Image, tile_w: int, tile_h: int) -> Image.Image:
    # Tile size is checked before the image is touched at all.
    validate_tile_size(tile_w, tile_h)
    src_w, src_h = img.size
    validate_source_size(tile_w, tile_h, src_w, src_h)

    src = np.asarray(img)
    out = compose(src, tile_w, tile_h)
    return _image_from_array(out, img)


def expand_autotile(
    img: Image.Image,
    tile_w: int,
    tile_h: int,
    transparent_color: Optional[Tuple[int, int, int]] = None,
) -> ExpandedAutotile:
    return ExpandedAutotile(
        image=expand_image(img, tile_w, tile_h),
        tile_w=tile_w,
        tile_h=tile_h,
        transparent_color=transparent_color,
    )


def load_source(path) -> Image.Image:
    path = str(path)
    if not Path(path).is_file():
        raise SourceUnreadable(path, "file not found")
    try:
        img = Image.open(path)
        img.load()
    except UnidentifiedImageError as e:
        raise SourceUnreadable(path, "not a recognized image format") from e
    except (OSError, Image.DecompressionBombError) as e:
        raise SourceUnreadable(path, str(e)) from e
    return img


def describe_cases(tile_w: int, tile_h: int) -> List[dict]:
    """Resolve every case entry to pixel coordinates, for .sym/.json dumps."""
    validate_tile_size(tile_w, tile_h)
    sub_w = tile_w // 2
    sub_h = tile_h // 2
    quads = quadrant_offsets(sub_w, sub_h)
    out = []
    for tid, case in enumerate(RMXP_CASES):
        ox, oy = tile_origin(tid, tile_w, tile_h)
        quadrants = []
        for role, (qx, qy), index in zip(QUADRANTS, quads, case):
            sx, sy = subtile_origin(index, sub_w, sub_h)
            quadrants.append(
                {
                    "role": role,
                    "subtile": index,
                    "src": [sx, sy],
                    "dst": [ox + qx, oy + qy],
                }
            )
        out.append(
            {
                "id": tid,
                "case": list(case),
                "origin": [ox, oy],
                "quadrants": quadrants,
            }
        )
    return out
