from __future__ import annotations

import errno
import os
from pathlib import Path


def safe_rename(src: Path, dst: Path) -> None:
    """Rename without overwriting. Over-long paths are retried relative to directory fds."""
    if _occupied(dst) and not _same_entry(src, dst):
        raise FileExistsError(errno.EEXIST, "destination exists", str(dst))
    try:
        src.rename(dst)
        return
    except OSError as exc:
        if exc.errno != errno.ENAMETOOLONG:
            raise
    dst.parent.mkdir(parents=True, exist_ok=True)
    src_dir_fd = os.open(src.parent, os.O_RDONLY)
    try:
        dst_dir_fd = os.open(dst.parent, os.O_RDONLY)
        try:
            os.rename(src.name, dst.name, src_dir_fd=src_dir_fd, dst_dir_fd=dst_dir_fd)
        finally:
            os.close(dst_dir_fd)
    finally:
        os.close(src_dir_fd)


def _occupied(dst: Path) -> bool:
    # Listing the parent avoids stat() on a full path that may be too long.
    try:
        with os.scandir(dst.parent) as entries:
            return any(entry.name == dst.name for entry in entries)
    except FileNotFoundError:
        return False


def _same_entry(src: Path, dst: Path) -> bool:
    # Case-only renames on case-insensitive filesystems.
    try:
        return src.samefile(dst)
    except OSError:
        return False
