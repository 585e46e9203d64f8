"""
Incremental compilation checks based on modification times.

Per file
--------
``src/com/foo/Bar.java`` under source root ``src`` maps to
``build/classes/com/foo/Bar.class``.  A source needs recompiling when that
output is missing or the source's mtime is strictly greater than the
output's.

Per module (conservative)
-------------------------
A module needs a compiler pass when its output tree holds no compiled files
at all, or when any source is newer than the *oldest* compiled file found
anywhere in the output tree.  This only decides whether the compiler runs;
what it compiles is still the per-file stale subset.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, List, Optional, TYPE_CHECKING

from cairn import config as cfg
from cairn import logger as log

if TYPE_CHECKING:
    from cairn.graph import DependencyGraph
    from cairn.workspace import LocalProject

# Directories inside a source tree that never hold sources
_IGNORE_DIRS = {".git", ".idea", "node_modules", "__pycache__", cfg.STATE_DIR}


def _walk(root: Path, suffix: str) -> Iterator[Path]:
    """Yield files under *root* ending in *suffix*, sorted, skipping _IGNORE_DIRS."""
    if not root.is_dir():
        return
    for item in sorted(root.rglob(f"*{suffix}")):
        if not item.is_file():
            continue
        if any(p.name in _IGNORE_DIRS for p in item.relative_to(root).parents):
            continue
        yield item


def _mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def expected_output(
    source: Path,
    source_root: Path,
    output_root: Path,
    extension: str = cfg.OUTPUT_EXTENSION,
) -> Path:
    """Map *source* (relative to *source_root*) onto *output_root* with *extension*."""
    relative = source.relative_to(source_root)
    return (output_root / relative).with_suffix(extension)


def needs_recompile(source: Path, source_root: Path, output_root: Path) -> bool:
    output = expected_output(source, source_root, output_root)
    out_mtime = _mtime(output)
    if out_mtime is None:
        return True
    src_mtime = _mtime(source)
    return src_mtime is not None and src_mtime > out_mtime


def source_files(source_root: Path) -> List[Path]:
    return list(_walk(source_root, cfg.SOURCE_EXTENSION))


def suite_sources(test_root: Path) -> List[Path]:
    """Sources under *test_root* named like test classes (``*Test.java``, ``*Tests.java``)."""
    return [src for src in source_files(test_root) if src.name.endswith(cfg.TEST_FILE_SUFFIXES)]


def stale_sources(source_root: Path, output_root: Path) -> List[Path]:
    """Every source under *source_root* whose compiled output is missing or older."""
    return [
        src for src in source_files(source_root)
        if needs_recompile(src, source_root, output_root)
    ]


def module_needs_recompile(source_root: Path, output_root: Path) -> bool:
    oldest: Optional[float] = None
    for compiled in _walk(output_root, cfg.OUTPUT_EXTENSION):
        mtime = _mtime(compiled)
        if mtime is not None and (oldest is None or mtime < oldest):
            oldest = mtime
    if oldest is None:
        return True

    for src in source_files(source_root):
        mtime = _mtime(src)
        if mtime is not None and mtime > oldest:
            return True
    return False


def projects_needing_recompile(
    graph: "DependencyGraph",
    projects: "Dict[str, LocalProject]",
    order: List[str],
) -> List[str]:
    """
    Names from *order* (a build order over *graph*) whose module check says
    a compiler pass is needed.
    """
    stale: List[str] = []
    for name in order:
        project = projects.get(name)
        if project is None or name not in graph:
            continue
        manifest = project.manifest
        if module_needs_recompile(manifest.source_path, manifest.output_path):
            stale.append(name)
    log.debug(f"{len(stale)} of {len(order)} project(s) need recompiling")
    return stale
