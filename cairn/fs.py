"""
File-system helpers: atomic artifact copies, JSON state files, resource trees.
"""
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict

from cairn import logger as log


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
    log.debug(f"Directory ready: {path}")


def copy_artifact(src: Path, dst: Path) -> None:
    """
    Copy *src* to *dst* atomically.

    The file is first written to a temporary file in the same directory as
    *dst*, then renamed into place with ``os.replace``.  A concurrent reader
    sees either no file or the complete file, never a partial one.

    Raises ``OSError`` if *src* is missing or the copy fails.
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=dst.parent, prefix=f".{dst.name}~")
    try:
        os.close(fd)
        shutil.copy2(src, tmp)
        os.replace(tmp, dst)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    log.debug(f"Copied  {src.name}  →  {dst}")


def write_json(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2)
        fh.write("\n")
    log.debug(f"Wrote {path}")


def read_json(path: Path) -> Dict[str, Any]:
    """Read a JSON object; raises ``OSError`` / ``ValueError`` on failure."""
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return data


def copy_tree(src: Path, dst: Path) -> int:
    """
    Recursively copy every file under *src* into *dst*, overwriting.
    Returns the number of files copied.
    """
    count = 0
    for item in sorted(src.rglob("*")):
        target = dst / item.relative_to(src)
        if item.is_dir():
            target.mkdir(parents=True, exist_ok=True)
        elif item.is_file():
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, target)
            count += 1
    return count


def remove_tree(path: Path) -> bool:
    """Delete *path* if it exists.  Returns True when something was removed."""
    if not path.exists():
        return False
    shutil.rmtree(path)
    log.info(f"Removed {path}")
    return True
