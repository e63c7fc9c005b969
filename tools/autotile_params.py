#!/usr/bin/env python3
"""
autotile_params.py - Parameters for the autotile expander: tile size, transparent color,
output paths and the persisted last-used preferences.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Optional, Tuple

from gen_paths import EXPANDED_SUFFIX

Color = Tuple[int, int, int]

DEFAULT_TILE_SIZE = 32

COLOR_NAMES: Dict[str, Color] = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 255, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "cyan": (0, 255, 255),
    "magenta": (255, 0, 255),
    "fuchsia": (255, 0, 255),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
}


def parse_num(s: str) -> int:
    s = s.strip()
    if s.startswith("$"):
        return int(s[1:], 16)
    return int(s, 0)


def parse_tile_size(s: str) -> Tuple[int, int]:
    size = s.strip().lower()
    if not size:
        raise ValueError("tile size must not be empty")
    try:
        v = parse_num(size)
        return v, v
    except ValueError:
        if "x" not in size:
            raise ValueError(f"tile size must look like 32x32: {s}") from None
    tw, th = size.split("x", 1)
    try:
        return int(tw), int(th)
    except ValueError:
        raise ValueError(f"tile size must look like 32x32: {s}") from None


def parse_color(s: str) -> Color:
    s = s.strip()
    key = s.lower().replace("_", "").replace("-", "").replace(" ", "")
    if key in COLOR_NAMES:
        return COLOR_NAMES[key]

    if "," in s:
        parts = [p.strip() for p in s.split(",")]
        if len(parts) != 3:
            raise ValueError(f"Expected 3 values r,g,b, got {len(parts)}: {s}")
        rgb = tuple(parse_num(p) for p in parts)
        for c in rgb:
            if not (0 <= c <= 255):
                raise ValueError(f"Color component out of range 0..255: {s}")
        return rgb

    digits = key
    for prefix in ("#", "0x", "$"):
        if digits.startswith(prefix):
            digits = digits[len(prefix):]
            break
    if len(digits) == 8:
        # #AARRGGBB, the order Tiled and Qt write
        digits = digits[2:]
    if len(digits) != 6:
        raise ValueError(f"Invalid color: {s}")
    try:
        value = int(digits, 16)
    except ValueError:
        raise ValueError(f"Invalid color: {s}") from None
    return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF


def format_color(color: Color) -> str:
    r, g, b = color
    return f"#{r:02x}{g:02x}{b:02x}"


def default_name(source) -> str:
    return Path(source).stem


def default_output_path(source) -> Path:
    source = Path(source)
    return source.parent / f"{source.stem}{EXPANDED_SUFFIX}.png"


@dataclass
class Preferences:
    tile_w: int = DEFAULT_TILE_SIZE
    tile_h: int = DEFAULT_TILE_SIZE
    use_transparent_color: bool = False
    transparent_color: str = ""

    def color(self) -> Optional[Color]:
        if not self.use_transparent_color or not self.transparent_color:
            return None
        try:
            return parse_color(self.transparent_color)
        except ValueError:
            return None


def load_prefs(path) -> Preferences:
    path = Path(path)
    if not path.exists():
        return Preferences()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return Preferences()
    if not isinstance(data, dict):
        return Preferences()

    prefs = Preferences()
    tw = data.get("tile_w")
    th = data.get("tile_h")
    if isinstance(tw, int) and tw > 0:
        prefs.tile_w = tw
    if isinstance(th, int) and th > 0:
        prefs.tile_h = th
    prefs.use_transparent_color = bool(data.get("use_transparent_color", False))
    color = data.get("transparent_color", "")
    if isinstance(color, str):
        prefs.transparent_color = color
    return prefs


def save_prefs(path, prefs: Preferences) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(prefs), indent=2) + "\n", encoding="utf-8")


@dataclass
class ExpandParams:
    source: Path
    name: str
    tile_w: int
    tile_h: int
    output: Path
    tileset: Optional[Path] = None
    transparent_color: Optional[Color] = None
    force: bool = False

    @classmethod
    def for_source(cls, source, tile_w: int, tile_h: int, **kw) -> "ExpandParams":
        source = Path(source)
        name = kw.pop("name", "") or default_name(source)
        output = kw.pop("output", None) or default_output_path(source)
        return cls(source=source, name=name, tile_w=tile_w, tile_h=tile_h, output=Path(output), **kw)
