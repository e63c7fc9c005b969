#!/usr/bin/env python3
"""
expand_autotile_all.py - Expand every RMXP autotile in a directory and emit a depfile + stamp.

Usage:
  python tools/expand_autotile_all.py --dir autotiles
  python tools/expand_autotile_all.py --dir autotiles --tile-size 16x16 --tileset-ext .tsj \
      --stamp debug/autotiles/autotiles.stamp --depfile debug/autotiles/autotiles.d
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path

from gen_paths import EXPANDED_SUFFIX


def run(cmd: list[str]) -> None:
    proc = subprocess.run(cmd)
    if proc.returncode != 0:
        sys.exit(proc.returncode)


def autotile_sources(src_dir: Path) -> list[Path]:
    return sorted(p for p in src_dir.glob("*.png") if not p.stem.endswith(EXPANDED_SUFFIX))


def expand_command(expander: Path, src: Path, tile_size: str, tileset_ext: str) -> list[str]:
    cmd = [sys.executable, str(expander), str(src), "--force", "--no-prefs"]
    if tile_size:
        cmd += ["--tile-size", tile_size]
    if tileset_ext:
        cmd += ["--tileset", str(src.with_suffix(tileset_ext))]
    return cmd


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--dir", default="autotiles", help="Directory containing RMXP autotile PNGs")
    ap.add_argument("--tile-size", default="32x32", help="Tile size as WxH")
    ap.add_argument("--tileset-ext", default=".tsx", help="Tileset extension (.tsx/.tsj), empty to skip")
    ap.add_argument("--stamp", default="", help="Stamp file path")
    ap.add_argument("--depfile", default="", help="Depfile path")
    args = ap.parse_args(argv)

    src_dir = Path(args.dir).resolve()
    if not src_dir.is_dir():
        print(f"Autotile dir not found: {src_dir}", file=sys.stderr)
        sys.exit(1)

    expander = Path(__file__).resolve().parent / "expand_autotile.py"
    sources = autotile_sources(src_dir)
    if not sources:
        print(f"No autotile .png files found in {src_dir}", file=sys.stderr)
        sys.exit(1)

    for src in sources:
        run(expand_command(expander, src, args.tile_size, args.tileset_ext))

    if args.stamp:
        stamp_path = Path(args.stamp)
        stamp_path.parent.mkdir(parents=True, exist_ok=True)
        stamp_path.write_text("ok\n", encoding="utf-8")

        if args.depfile:
            dep_path = Path(args.depfile)
            dep_path.parent.mkdir(parents=True, exist_ok=True)
            deps = " ".join(str(p) for p in sources)
            dep_path.write_text(f"{stamp_path}: {deps}\n", encoding="utf-8")


if __name__ == "__main__":
    main()
