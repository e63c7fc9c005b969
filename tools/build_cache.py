#!/usr/bin/env python3
"""
build_cache.py - mtime cache deciding which autotile sheets need re-expanding.

The cache file maps each source sheet to the mtimes seen after its last
successful expansion:

  { "<sheet>": { "input_mtime": 1.0, "outputs": { "<png>": 1.0, "<tsx>": 1.0 } } }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable


def file_mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return 0.0


@dataclass
class BuildCache:
    path: Path
    entries: Dict[str, dict] = field(default_factory=dict)

    @classmethod
    def load(cls, path) -> "BuildCache":
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return cls(path)
        return cls(path, data if isinstance(data, dict) else {})

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.entries, indent=2), encoding="utf-8")

    def is_stale(self, sheet: Path, outputs: Iterable[Path]) -> bool:
        """True when sheet exists and changed, or any output is missing or was touched."""
        sheet_m = file_mtime(sheet)
        if sheet_m == 0.0:
            return False
        entry = self.entries.get(str(sheet), {})
        if entry.get("input_mtime") != sheet_m:
            return True
        seen = entry.get("outputs", {})
        for out in outputs:
            out_m = file_mtime(out)
            if out_m == 0.0 or seen.get(str(out)) != out_m:
                return True
        return False

    def record(self, sheet: Path, outputs: Iterable[Path]) -> None:
        self.entries[str(sheet)] = {
            "input_mtime": file_mtime(sheet),
            "outputs": {str(out): file_mtime(out) for out in outputs},
        }
