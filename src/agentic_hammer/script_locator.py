"""Locate a project script by walking up the directory tree."""

import os
from pathlib import Path
from typing import Optional, Union

from agentic_hammer.constants import DEFAULT_HAMMER_SCRIPT


def find_script(
    start_dir: Union[str, Path],
    script_name: str = DEFAULT_HAMMER_SCRIPT,
) -> Optional[Path]:
    """
    Find script_name in start_dir or the nearest parent directory.

    Only regular, readable files match. Returns the absolute path, or None
    once the filesystem root has been checked without a match.
    """
    current = Path(os.path.abspath(start_dir))

    while True:
        candidate = current / script_name
        if candidate.is_file() and os.access(candidate, os.R_OK):
            return candidate

        if current.parent == current:
            return None

        current = current.parent
