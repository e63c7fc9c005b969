#!/usr/bin/env python3
"""
tileset_writer.py - Persist an expanded autotile: the 8x6 PNG and a Tiled tileset descriptor.

Formats (picked from the descriptor file extension):
  - .tsx / .xml   Tiled XML tileset
  - .tsj / .json  Tiled JSON tileset
"""

from __future__ import annotations

import json
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image

from autotile_params import format_color
from rmxp_autotile import ExpandedAutotile, OutputWriteFailed

TILED_VERSION = "1.10.2"
TILESET_VERSION = "1.10"

TILESET_FORMATS = {
    ".tsx": "tsx",
    ".xml": "tsx",
    ".tsj": "json",
    ".json": "json",
}

# Modes the PNG encoder writes as-is.
PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


@dataclass
class TilesetDescriptor:
    name: str
    tile_w: int
    tile_h: int
    image_path: Path
    image_w: int
    image_h: int
    tile_count: int
    columns: int
    transparent_color: Optional[Tuple[int, int, int]] = None

    @classmethod
    def from_expanded(cls, name: str, expanded: ExpandedAutotile, image_path) -> "TilesetDescriptor":
        image_w, image_h = expanded.size
        return cls(
            name=name,
            tile_w=expanded.tile_w,
            tile_h=expanded.tile_h,
            image_path=Path(image_path),
            image_w=image_w,
            image_h=image_h,
            tile_count=expanded.tile_count,
            columns=expanded.columns,
            transparent_color=expanded.transparent_color,
        )


def format_for_file(path) -> Optional[str]:
    return TILESET_FORMATS.get(Path(path).suffix.lower())


def image_ref(desc: TilesetDescriptor, tileset_path) -> str:
    base = Path(tileset_path).resolve().parent
    img = desc.image_path.resolve()
    try:
        rel = os.path.relpath(img, base)
    except ValueError:
        # different drive on Windows
        rel = str(img)
    return rel.replace("\\", "/")


def render_tsx(desc: TilesetDescriptor, tileset_path) -> str:
    root = ET.Element(
        "tileset",
        {
            "version": TILESET_VERSION,
            "tiledversion": TILED_VERSION,
            "name": desc.name,
            "tilewidth": str(desc.tile_w),
            "tileheight": str(desc.tile_h),
            "tilecount": str(desc.tile_count),
            "columns": str(desc.columns),
        },
    )
    attrs = {"source": image_ref(desc, tileset_path)}
    if desc.transparent_color is not None:
        attrs["trans"] = format_color(desc.transparent_color)[1:]
    attrs["width"] = str(desc.image_w)
    attrs["height"] = str(desc.image_h)
    ET.SubElement(root, "image", attrs)
    ET.indent(root, space=" ")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


def render_tsj(desc: TilesetDescriptor, tileset_path) -> dict:
    out = {
        "columns": desc.columns,
        "image": image_ref(desc, tileset_path),
        "imageheight": desc.image_h,
        "imagewidth": desc.image_w,
        "margin": 0,
        "name": desc.name,
        "spacing": 0,
        "tilecount": desc.tile_count,
        "tiledversion": TILED_VERSION,
        "tileheight": desc.tile_h,
        "tilewidth": desc.tile_w,
        "type": "tileset",
        "version": TILESET_VERSION,
    }
    if desc.transparent_color is not None:
        out["transparentcolor"] = format_color(desc.transparent_color)
    return out


def write_descriptor(desc: TilesetDescriptor, path, fmt: str) -> None:
    path = Path(path)
    if fmt == "tsx":
        text = render_tsx(desc, path)
    elif fmt == "json":
        text = json.dumps(render_tsj(desc, path), indent=4) + "\n"
    else:
        raise ValueError(f"Unknown tileset format: {fmt}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise OutputWriteFailed(str(path), str(e)) from e


def png_compatible(img: Image.Image) -> Image.Image:
    """Return img in a mode PNG can store (CMYK, YCbCr, PA, F, I;16B... are converted)."""
    if img.mode in PNG_MODES:
        return img
    if img.mode == "F" or img.mode.startswith("I;16"):
        return img.convert("I")
    if "A" in img.getbands() or "a" in img.getbands():
        return img.convert("RGBA")
    return img.convert("RGB")


def save_expanded_image(expanded: ExpandedAutotile, path) -> None:
    path = Path(path)
    img = expanded.image
    try:
        if path.suffix.lower() == ".png":
            img = png_compatible(img)
        path.parent.mkdir(parents=True, exist_ok=True)
        img.save(path)
    except (OSError, ValueError) as e:
        raise OutputWriteFailed(str(path), str(e)) from e
