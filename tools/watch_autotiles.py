#!/usr/bin/env python3
"""
watch_autotiles.py - Re-expand RMXP autotiles when a source sheet or its outputs change.

Usage:
  python tools/watch_autotiles.py --dir autotiles
  python tools/watch_autotiles.py --dir autotiles --once
  python tools/watch_autotiles.py /path/to/project --tile-size 16x16
"""

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from autotile_params import default_output_path
from build_cache import BuildCache
from expand_autotile_all import autotile_sources, expand_command
from gen_paths import CACHE_FILE, EXPANDED_SUFFIX


def run(cmd: list[str]) -> bool:
    proc = subprocess.run(cmd)
    return proc.returncode == 0


def outputs_for(src: Path, tileset_ext: str) -> list[Path]:
    outputs = [default_output_path(src)]
    if tileset_ext:
        outputs.append(src.with_suffix(tileset_ext))
    return outputs


def is_autotile_source(path: str) -> bool:
    p = Path(path)
    return p.suffix.lower() == ".png" and not p.stem.endswith(EXPANDED_SUFFIX)


def run_once(
    src_dir: Path,
    expander: Path,
    cache_path: Path,
    tile_size: str,
    tileset_ext: str,
    changed_path: str | None = None,
) -> bool:
    ok = True
    cache = BuildCache.load(cache_path)
    if changed_path:
        sources = [Path(changed_path)]
    else:
        sources = autotile_sources(src_dir)
    for src in sources:
        outputs = outputs_for(src, tileset_ext)
        if cache.is_stale(src, outputs):
            if run(expand_command(expander, src, tile_size, tileset_ext)):
                cache.record(src, outputs)
            else:
                ok = False
    cache.save()
    return ok


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("root", nargs="?", default=".", help="Project root (default: .)")
    ap.add_argument("--dir", default="autotiles", help="Directory containing RMXP autotile PNGs")
    ap.add_argument("--tile-size", default="32x32", help="Tile size as WxH")
    ap.add_argument("--tileset-ext", default=".tsx", help="Tileset extension (.tsx/.tsj), empty to skip")
    ap.add_argument("--interval", type=float, default=0.5, help="Polling interval in seconds")
    ap.add_argument("--once", action="store_true", help="Run a single pass and exit")
    args = ap.parse_args(argv)

    root = Path(args.root).resolve()
    src_dir = (root / args.dir).resolve()
    cache_path = root / CACHE_FILE

    if not src_dir.is_dir():
        print(f"{src_dir}:1:1: error: Autotile dir not found", file=sys.stderr)
        sys.exit(1)

    expander = Path(__file__).resolve().parent / "expand_autotile.py"

    def run_cycle(changed_path: str | None = None) -> bool:
        return run_once(src_dir, expander, cache_path, args.tile_size, args.tileset_ext, changed_path)

    if args.once:
        if not run_cycle():
            sys.exit(1)
        return

    class AutotileHandler(FileSystemEventHandler):
        def _rebuild(self, event):
            if event.is_directory or not is_autotile_source(event.src_path):
                return
            print("AUTOTILE START")
            run_cycle(event.src_path)
            print("AUTOTILE END")

        def on_modified(self, event):
            self._rebuild(event)

        def on_created(self, event):
            self._rebuild(event)

    observer = Observer()
    observer.schedule(AutotileHandler(), str(src_dir), recursive=False)
    observer.start()

    print("AUTOTILE START")
    run_cycle()
    print("AUTOTILE END")

    try:
        while True:
            time.sleep(args.interval)
    except KeyboardInterrupt:
        observer.stop()
    observer.join()


if __name__ == "__main__":
    main()
