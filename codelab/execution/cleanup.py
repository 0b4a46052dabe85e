"""
Artifact removal after a run.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from ..core.logging import get_logger
from .workspace import RunContext

logger = get_logger(__name__)


def cleanup_run(context: RunContext) -> list[Path]:
    """
    Remove every artifact a run could have produced.

    Missing paths are skipped. Filesystem errors are logged and swallowed so
    cleanup never changes the outcome of the execution.

    Returns:
        Paths that were actually removed.
    """
    removed: list[Path] = []
    for path in context.artifact_paths:
        try:
            if _remove_path(path):
                removed.append(path)
        except OSError as e:
            logger.warning(f"Cleanup error for run {context.run_id} at {path}: {e}")

    if removed:
        logger.debug(f"Cleaned {len(removed)} artifact(s) for run {context.run_id}")
    return removed


def _remove_path(path: Path) -> bool:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
