"""Pytest configuration shared by all test packages.

Puts the project root on ``PYTHONPATH`` so ``python -m flashsource.cli.main``
works from a source checkout without an editable install, including in
subprocesses spawned by tests.
"""

from __future__ import annotations

import os
from pathlib import Path


def _ensure_repo_on_path() -> None:
    repo_root = Path(__file__).resolve().parent.parent
    existing = os.environ.get("PYTHONPATH")
    paths = [str(repo_root)]
    if existing:
        paths.append(existing)
    os.environ["PYTHONPATH"] = os.pathsep.join(paths)


_ensure_repo_on_path()
