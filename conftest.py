"""Pytest bootstrap so ``reframe`` imports from a source checkout without installing."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent

EXTRA_PATHS = [
    ROOT / "src",
]

for path in EXTRA_PATHS:
    if path.exists():
        sys.path.insert(0, str(path))
