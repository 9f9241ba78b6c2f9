"""Locate Rust source files in a project directory."""

import os
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

SKIPPED_DIRS = {"target"}


def scan_rust_files(root: Path) -> list[Path]:
    """Return every ``*.rs`` file under ``root`` in sorted order.

    Build output (``target/``) and hidden directories are not descended into.
    """
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIPPED_DIRS and not d.startswith(".")
        )
        for name in filenames:
            if name.endswith(".rs"):
                files.append(Path(dirpath) / name)
    files.sort()
    logger.debug("scanned project", root=str(root), files=len(files))
    return files


def _log_walk_error(error: OSError) -> None:
    logger.warning("cannot read directory", path=error.filename, error=str(error))
