#!/usr/bin/env python3
"""
expand_autotile.py - Expand an RPG Maker XP ground autotile into a 48-tile tileset for Tiled.

Outputs:
  - <source>_expanded.png  8x6 tiles, tile id = row*8 + col
  - .tsx/.tsj              Optional Tiled tileset referencing the PNG
  - .sym                   Human-readable case table with resolved coordinates
  - .json                  Optional debug

Usage:
  python tools/expand_autotile.py grass.png --tile-size 32x32 --tileset grass.tsx
  python tools/expand_autotile.py water.png --transparent-color "#ff00ff" -o out/water.png --force

Tile size and transparent color default to the values used on the previous run
(stored in build/.autotile_prefs.json), then to 32x32 and no color.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from autotile_params import (
    ExpandParams,
    Preferences,
    format_color,
    load_prefs,
    parse_color,
    parse_tile_size,
    save_prefs,
)
from gen_paths import ANALYSIS_ROOT, PREFS_FILE
from rmxp_autotile import (
    AutotileError,
    ExpandedAutotile,
    OutputWriteFailed,
    describe_cases,
    expand_autotile,
    load_source,
    validate_tile_size,
)
from tileset_writer import (
    TilesetDescriptor,
    format_for_file,
    save_expanded_image,
    write_descriptor,
)


def confirm_overwrite(path: Path, force: bool) -> bool:
    if force or not path.exists():
        return True
    if not sys.stdin.isatty():
        return False
    answer = input(f"File {path} already exists. Overwrite? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def run_expand(params: ExpandParams) -> ExpandedAutotile:
    validate_tile_size(params.tile_w, params.tile_h)
    img = load_source(params.source)
    try:
        return expand_autotile(img, params.tile_w, params.tile_h, params.transparent_color)
    except AutotileError as e:
        if not e.path:
            e.path = str(params.source)
        raise


def build_debug(params: ExpandParams, expanded: ExpandedAutotile) -> dict:
    return {
        "name": params.name,
        "source": str(params.source),
        "output": str(params.output),
        "tile_w": expanded.tile_w,
        "tile_h": expanded.tile_h,
        "image_size": list(expanded.size),
        "columns": expanded.columns,
        "tile_count": expanded.tile_count,
        "transparent_color": format_color(expanded.transparent_color) if expanded.transparent_color else None,
        "tiles": describe_cases(expanded.tile_w, expanded.tile_h),
    }


def render_sym(params: ExpandParams, expanded: ExpandedAutotile) -> str:
    sym: List[str] = []
    out_w, out_h = expanded.size
    sym.append(f'AUTOTILE name="{params.name}" source={params.source}\n')
    sym.append(f"TILE {expanded.tile_w}x{expanded.tile_h} SUBTILE {expanded.tile_w // 2}x{expanded.tile_h // 2}\n")
    sym.append(f"OUT {out_w}x{out_h} columns={expanded.columns} tileCount={expanded.tile_count}\n\n")
    sym.append("TILES\n")
    for t in describe_cases(expanded.tile_w, expanded.tile_h):
        quads = " ".join(
            f"{q['role']}={q['subtile']:2d}@{q['src'][0]},{q['src'][1]}" for q in t["quadrants"]
        )
        sym.append(f"  id={t['id']:2d} at={t['origin'][0]},{t['origin'][1]} {quads}\n")
    return "".join(sym)


def _error(path, message: str) -> None:
    print(f"{os.path.abspath(str(path))}:1:1: error: {message}", file=sys.stderr)
    sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("source", help="Input RMXP autotile image (3x4 tiles)")
    ap.add_argument("--tile-size", default="", help="Tile size as WxH, e.g. 32x32")
    ap.add_argument("--tile-width", type=int, default=None, help="Tile width in px")
    ap.add_argument("--tile-height", type=int, default=None, help="Tile height in px")
    ap.add_argument("--name", default="", help="Tileset name (defaults to the source file name)")
    ap.add_argument("--transparent-color", default="", help="Tileset transparent color, e.g. #ff00ff")
    ap.add_argument("--no-transparent-color", action="store_true", help="Ignore the saved transparent color")
    ap.add_argument("-o", "--output", default="", help="Output PNG (defaults to <source>_expanded.png)")
    ap.add_argument("--tileset", default="", help="Output tileset (.tsx/.xml or .tsj/.json)")
    ap.add_argument("--sym", default="AUTO", help="Output .sym")
    ap.add_argument("--json", default="AUTO", help="Output debug .json")
    ap.add_argument("--prefs", default=PREFS_FILE, help="Preferences file")
    ap.add_argument("--no-prefs", action="store_true", help="Do not read or write preferences")
    ap.add_argument("-f", "--force", action="store_true", help="Overwrite existing outputs")
    args = ap.parse_args(argv)

    prefs = Preferences() if args.no_prefs else load_prefs(args.prefs)

    tile_w, tile_h = prefs.tile_w, prefs.tile_h
    if args.tile_size:
        try:
            tile_w, tile_h = parse_tile_size(args.tile_size)
        except ValueError as e:
            _error(args.source, str(e))
    if args.tile_width is not None:
        tile_w = args.tile_width
    if args.tile_height is not None:
        tile_h = args.tile_height

    color = None if args.no_transparent_color else prefs.color()
    if args.transparent_color:
        try:
            color = parse_color(args.transparent_color)
        except ValueError as e:
            _error(args.source, str(e))

    params = ExpandParams.for_source(
        args.source,
        tile_w,
        tile_h,
        name=args.name,
        output=args.output or None,
        tileset=Path(args.tileset) if args.tileset else None,
        transparent_color=color,
        force=args.force,
    )

    if not params.source.is_file():
        _error(params.source, "Non-existent file chosen. Tileset will not be created.")

    if not args.no_prefs:
        prefs.tile_w = tile_w
        prefs.tile_h = tile_h
        prefs.use_transparent_color = color is not None
        if color is not None:
            prefs.transparent_color = format_color(color)
        save_prefs(args.prefs, prefs)

    try:
        expanded = run_expand(params)
    except AutotileError as e:
        _error(e.path or params.source, e.message)

    fmt = None
    if params.tileset:
        fmt = format_for_file(params.tileset)
        if not fmt:
            print(
                f"warning: Could not find valid Tileset format for {params.tileset.name}, saving in TSX format.",
                file=sys.stderr,
            )
            fmt = "tsx"

    targets = [params.output]
    if params.tileset:
        targets.append(params.tileset)
    for target in targets:
        if not confirm_overwrite(target, params.force):
            _error(target, "File already exists (use --force to overwrite)")

    try:
        save_expanded_image(expanded, params.output)
        print(f"Wrote {params.output} ({expanded.size[0]}x{expanded.size[1]})")
        if params.tileset:
            desc = TilesetDescriptor.from_expanded(params.name, expanded, params.output)
            write_descriptor(desc, params.tileset, fmt)
            print(f"Wrote {params.tileset}")
    except OutputWriteFailed as e:
        _error(e.path, e.message)

    if args.sym == "AUTO":
        args.sym = os.path.join(ANALYSIS_ROOT, "autotiles", f"{params.name}.sym")
    if args.json == "AUTO":
        args.json = os.path.join(ANALYSIS_ROOT, "autotiles", f"{params.name}.json")

    if args.sym:
        os.makedirs(os.path.dirname(os.path.abspath(args.sym)), exist_ok=True)
        with open(args.sym, "w", encoding="utf-8") as f:
            f.write(render_sym(params, expanded))
        print(f"Wrote {args.sym}")

    if args.json:
        os.makedirs(os.path.dirname(os.path.abspath(args.json)), exist_ok=True)
        with open(args.json, "w", encoding="utf-8") as f:
            json.dump(build_debug(params, expanded), f, indent=2)
        print(f"Wrote {args.json}")


if __name__ == "__main__":
    main()
