"""
Classpath assembly and the per-project classpath cache.

Compile classpath, in this fixed order (empty fragments skipped):

  1. the project's own output directory, if it exists
  2. outputs of local workspace dependencies
  3. remote artifacts from the global store

Cache file ``.cairn/classpath.json``::

    {
      "classpath":   ["/home/me/.cairn/libs/org.slf4j/slf4j-api/2.0.9/slf4j-api-2.0.9.jar", ...],
      "lastUpdated": "2026-01-01T12:00:00+00:00"
    }

Entries are stored in the manifest's declared dependency order; anything
that matches no declared dependency (local outputs, transitive jars) follows
in lexicographic order.  The cache is valid only while it is strictly newer
than ``cairn.json`` and every listed path still exists.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union, TYPE_CHECKING

from cairn import config as cfg
from cairn import fs
from cairn import logger as log
from cairn.coordinates import artifact_of
from cairn.resolver import RemoteResolver
from cairn.workspace import LocalProjectResolver

if TYPE_CHECKING:
    from cairn.manifest import ProjectManifest
    from cairn.workspace import LocalProject

Fragment = Union[str, Iterable[str]]

# "<artifact>-<version>.jar" where the version starts with a digit
_VERSIONED_JAR = re.compile(r"^(?P<artifact>.+?)-\d[^/\\]*\.jar$")


# ─────────────────────────────────────────────────────────────────────────────
# Path-list helpers
# ─────────────────────────────────────────────────────────────────────────────

def split_classpath(classpath: str) -> List[str]:
    return [p for p in classpath.split(cfg.CLASSPATH_SEPARATOR) if p]


def join_classpath(entries: Iterable[str]) -> str:
    return cfg.CLASSPATH_SEPARATOR.join(str(e) for e in entries if e)


def _entries(fragment: Fragment) -> List[str]:
    if isinstance(fragment, str):
        return split_classpath(fragment)
    return [str(e) for e in fragment if e]


def merge_classpaths(*fragments: Fragment) -> str:
    """Concatenate fragments, dropping repeated entries (first occurrence kept)."""
    seen: set = set()
    merged: List[str] = []
    for fragment in fragments:
        for entry in _entries(fragment):
            if entry not in seen:
                seen.add(entry)
                merged.append(entry)
    return join_classpath(merged)


def assemble_compile_classpath(
    output_dir: Path,
    local: Fragment = (),
    remote: Fragment = (),
) -> str:
    parts: List[str] = []
    if output_dir.exists():
        parts.append(str(output_dir))
    parts.extend(_entries(local))
    parts.extend(_entries(remote))
    return join_classpath(parts)


def runtime_classpath(output_dir: Path, dependencies: Fragment = ()) -> str:
    return merge_classpaths([str(output_dir)], dependencies)


# ─────────────────────────────────────────────────────────────────────────────
# Cache
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ClasspathCache:
    entries:     List[str] = field(default_factory=list)
    resolved_at: str       = ""

    def to_dict(self) -> dict:
        return {"classpath": list(self.entries), "lastUpdated": self.resolved_at}


def _artifact_id_of(entry: str) -> Optional[str]:
    """
    Artifact id of a jar path, from the store layout
    ``<group>/<artifact>/<version>/<artifact>-<version>.jar`` or failing that
    from the file name alone.
    """
    path = Path(entry)
    if path.suffix != ".jar":
        return None
    version  = path.parent.name
    artifact = path.parent.parent.name
    if artifact and version and path.name.startswith(f"{artifact}-{version}"):
        return artifact
    match = _VERSIONED_JAR.match(path.name)
    return match.group("artifact") if match else None


def order_entries(entries: List[str], declared: Iterable[str]) -> List[str]:
    """
    Sort *entries* by the position of their artifact in *declared* (manifest
    dependency names, in declaration order).  Unmatched entries follow,
    sorted lexicographically.
    """
    position: Dict[str, int] = {}
    for index, name in enumerate(declared):
        position.setdefault(artifact_of(name), index)

    matched: List[tuple] = []
    unmatched: List[str] = []
    for entry in entries:
        artifact = _artifact_id_of(entry)
        if artifact is not None and artifact in position:
            matched.append((position[artifact], entry))
        else:
            unmatched.append(entry)

    matched.sort(key=lambda pair: pair[0])
    return [entry for _, entry in matched] + sorted(unmatched)


def write_cache(cache_path: Path, entries: List[str]) -> ClasspathCache:
    cache = ClasspathCache(list(entries), datetime.now(timezone.utc).isoformat())
    fs.write_json(cache_path, cache.to_dict())
    return cache


def read_cache(cache_path: Path) -> Optional[ClasspathCache]:
    """Return the cache, or ``None`` when it is absent or unreadable."""
    if not cache_path.exists():
        return None
    try:
        data = fs.read_json(cache_path)
        entries = data["classpath"]
        if not isinstance(entries, list):
            raise ValueError("'classpath' is not a list")
    except (OSError, ValueError, KeyError) as exc:
        log.warn(f"Ignoring unreadable classpath cache {cache_path}: {exc}")
        return None
    return ClasspathCache([str(e) for e in entries], str(data.get("lastUpdated", "")))


def is_cache_valid(cache_path: Path, manifest_path: Path) -> bool:
    try:
        if cache_path.stat().st_mtime <= manifest_path.stat().st_mtime:
            return False
    except OSError:
        return False
    cache = read_cache(cache_path)
    if cache is None:
        return False
    missing = [e for e in cache.entries if not Path(e).exists()]
    if missing:
        log.debug(f"Classpath cache stale: {len(missing)} missing path(s), e.g. {missing[0]}")
        return False
    return True


def clear_cache(cache_path: Path) -> bool:
    if not cache_path.exists():
        return False
    cache_path.unlink()
    log.info(f"Removed {cache_path}")
    return True


# ─────────────────────────────────────────────────────────────────────────────
# Sync
# ─────────────────────────────────────────────────────────────────────────────

def sync_dependencies(
    manifest: "ProjectManifest",
    projects: "Optional[Dict[str, LocalProject]]" = None,
) -> List[str]:
    """Resolve every dependency (local first, then remote) and rewrite the cache."""
    log.info(f"Syncing dependencies for {manifest.name}")
    local = LocalProjectResolver(manifest.project_dir).resolve_dependencies(
        manifest.dependencies, projects
    )
    if local.local_entries:
        log.info(f"Found {len(local.local_entries)} local dependenc"
                 f"{'y' if len(local.local_entries) == 1 else 'ies'}")

    remote: List[str] = []
    if local.remainder:
        resolver = RemoteResolver(
            manifest.project_dir,
            manifest.effective_repositories(),
            local_rep=manifest.local_rep,
        )
        remote = resolver.resolve(local.remainder)

    entries = order_entries(local.local_entries + remote, manifest.dependencies)
    write_cache(manifest.cache_path, entries)
    log.success(
        f"Dependencies synced ({len(local.local_entries)} local, {len(remote)} remote)"
    )
    return entries


def ensure_dependencies(
    manifest: "ProjectManifest",
    projects: "Optional[Dict[str, LocalProject]]" = None,
) -> List[str]:
    """Cached dependency classpath entries when valid, else a fresh sync."""
    if is_cache_valid(manifest.cache_path, manifest.path):
        cache = read_cache(manifest.cache_path)
        if cache is not None:
            log.info(f"Using cached dependencies ({cfg.CLASSPATH_CACHE})")
            return cache.entries
    return sync_dependencies(manifest, projects)


def dependency_fragments(
    manifest: "ProjectManifest",
    projects: "Optional[Dict[str, LocalProject]]" = None,
) -> tuple:
    """
    ``(local, remote)`` classpath fragments for *manifest*.  Local outputs are
    looked up fresh from the workspace; remote entries are whatever the cache
    (or a sync) lists beyond those.
    """
    entries = ensure_dependencies(manifest, projects)
    local = LocalProjectResolver(manifest.project_dir).resolve_dependencies(
        manifest.dependencies, projects
    ).local_entries
    seen = set(local)
    return local, [e for e in entries if e not in seen]


def compile_classpath(
    manifest: "ProjectManifest",
    projects: "Optional[Dict[str, LocalProject]]" = None,
) -> str:
    local, remote = dependency_fragments(manifest, projects)
    return assemble_compile_classpath(manifest.output_path, local, remote)


def project_runtime_classpath(
    manifest: "ProjectManifest",
    projects: "Optional[Dict[str, LocalProject]]" = None,
) -> str:
    local, remote = dependency_fragments(manifest, projects)
    return runtime_classpath(manifest.output_path, local + remote)


def resolve_test_dependencies(
    manifest: "ProjectManifest",
    projects: "Optional[Dict[str, LocalProject]]" = None,
) -> List[str]:
    """
    Classpath entries for ``devDependencies``: local outputs first, then the
    remote remainder.  Resolved on every call and never written to the cache.
    """
    if not manifest.dev_dependencies:
        return []
    local = LocalProjectResolver(manifest.project_dir).resolve_dependencies(
        manifest.dev_dependencies, projects
    )
    remote: List[str] = []
    if local.remainder:
        resolver = RemoteResolver(
            manifest.project_dir,
            manifest.effective_repositories(),
            local_rep=manifest.local_rep,
        )
        remote = resolver.resolve(local.remainder)
    return local.local_entries + remote
