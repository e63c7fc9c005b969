#!/usr/bin/env python3
"""
gen_paths.py - Output locations shared by the autotile tools (relative to the project root).
"""

ANALYSIS_ROOT = "gen/analysis"
BUILD_ROOT = "build"

PREFS_FILE = f"{BUILD_ROOT}/.autotile_prefs.json"
CACHE_FILE = f"{BUILD_ROOT}/.autotile_cache.json"

EXPANDED_SUFFIX = "_expanded"
