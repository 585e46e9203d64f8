"""
Remote artifact resolution.

Coordinates that no local project satisfies are handed to an external fetch
tool (the coursier CLI by default)::

    cs fetch com.foo:bar:1.2.3 ... --classpath --cache ~/.cairn/cache \\
       -r <repo> ... --parallel 4 --ttl inf

The tool prints a separator-joined list of file paths on stdout and progress
on stderr.  A non-zero exit is fatal and its stderr is surfaced unchanged.

Promotion to the global store
-----------------------------
Every ``.jar`` path in the tool output is parsed against the usual repository
layout (``.../maven2/<group segments>/<artifact>/<version>/<file>``) and
copied exactly once into the store as ``<store>/<group>/<artifact>/<version>/<file>``.
A symlink ``<project>/.cairn/libs/<group>`` pointing at ``<store>/<group>`` is
created for browsing; failing to create it only logs a warning.  The
classpath returned always uses the canonical store paths, so every project
sharing a dependency ends up with identical path strings.

No lock is taken on the store.  Two builds promoting the same artifact at
the same moment both write a temp file and rename it into place; the last
rename wins and both copies are identical.
"""
from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from cairn import config as cfg
from cairn import fs
from cairn import logger as log
from cairn.coordinates import is_valid_registry_coordinate, to_registry
from cairn.errors import ResolutionError


# ─────────────────────────────────────────────────────────────────────────────
# Artifact model
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ArtifactCoordinate:
    group:    str
    artifact: str
    version:  str
    filename: str

    @property
    def registry(self) -> str:
        return f"{self.group}:{self.artifact}:{self.version}"

    def store_path(self, store: Path) -> Path:
        return store / self.group / self.artifact / self.version / self.filename


@dataclass
class CachedArtifact:
    coordinate: ArtifactCoordinate
    path:       Path                    # canonical path in the store
    link:       Optional[Path] = None   # per-project convenience link, if any


def parse_artifact_path(path: str) -> Optional[ArtifactCoordinate]:
    """
    Recover group/artifact/version from a repository-layout path.

    ``.../maven2/org/slf4j/slf4j-api/2.0.9/slf4j-api-2.0.9.jar`` →
    ``ArtifactCoordinate("org.slf4j", "slf4j-api", "2.0.9", "slf4j-api-2.0.9.jar")``

    Markers are tried in :data:`cfg.REPOSITORY_LAYOUT_MARKERS` order and the
    first one present decides.  Returns ``None`` for anything else.
    """
    normalized = path.replace("\\", "/")
    for marker in cfg.REPOSITORY_LAYOUT_MARKERS:
        idx = normalized.find(marker)
        if idx == -1:
            continue
        parts = [p for p in normalized[idx + len(marker):].split("/") if p]
        if len(parts) < 4:
            return None
        return ArtifactCoordinate(
            group    = ".".join(parts[:-3]),
            artifact = parts[-3],
            version  = parts[-2],
            filename = parts[-1],
        )
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Store operations
# ─────────────────────────────────────────────────────────────────────────────

def ensure_canonical_copy(source: Path, coordinate: ArtifactCoordinate, store: Path) -> Path:
    """
    Copy *source* into *store* under *coordinate* unless it is already there.
    Returns the canonical path either way.
    """
    dest = coordinate.store_path(store)
    if dest.exists():
        return dest
    try:
        fs.copy_artifact(source, dest)
    except OSError as exc:
        raise ResolutionError(f"Cannot store {coordinate.registry} from {source}: {exc}") from exc
    log.debug(f"Stored {coordinate.registry} → {dest}")
    return dest


def ensure_convenience_link(project_dir: Path, store: Path, group: str) -> Optional[Path]:
    """
    Best-effort ``<project>/.cairn/libs/<group>`` → ``<store>/<group>`` link.
    Returns the link path, or ``None`` when the host refused to create it.
    """
    link = project_dir / cfg.LOCAL_LIBS_DIR / group
    target = store / group
    if link.is_symlink() or link.exists():
        return link
    try:
        link.parent.mkdir(parents=True, exist_ok=True)
        link.symlink_to(target, target_is_directory=True)
    except OSError as exc:
        log.warn(f"Could not link {link} → {target}: {exc}")
        return None
    return link


# ─────────────────────────────────────────────────────────────────────────────
# Fetch command
# ─────────────────────────────────────────────────────────────────────────────

def build_fetch_command(
    coordinates: List[str],
    repositories: List[str],
    *,
    command: Optional[str] = None,
    cache_dir: Optional[Path] = None,
    parallelism: Optional[int] = None,
    ttl: Optional[str] = None,
) -> List[str]:
    """Unset options fall back to the current ``cairn.config`` values."""
    command     = command or cfg.RESOLVER_COMMAND
    cache_dir   = cache_dir or cfg.RESOLVER_CACHE_DIR
    parallelism = parallelism or cfg.RESOLVER_PARALLELISM
    ttl         = ttl or cfg.RESOLVER_TTL
    cmd = [command, "fetch", *coordinates, "--classpath", "--cache", str(cache_dir)]
    for repo in repositories:
        cmd += ["-r", repo]
    cmd += ["--parallel", str(parallelism), "--ttl", ttl]
    return cmd


# ─────────────────────────────────────────────────────────────────────────────
# Resolver
# ─────────────────────────────────────────────────────────────────────────────

class RemoteResolver:
    """Resolve registry coordinates and promote the results into the store."""

    def __init__(
        self,
        project_dir: Path,
        repositories: Optional[List[str]] = None,
        *,
        local_rep: bool = False,
        command: Optional[str] = None,
    ) -> None:
        self.project_dir  = Path(project_dir)
        self.repositories = list(repositories or cfg.DEFAULT_REPOSITORIES)
        self.store        = cfg.global_store(self.project_dir, local_rep)
        self.command      = command or cfg.RESOLVER_COMMAND
        self.artifacts: List[CachedArtifact] = []

    def resolve(self, dependencies: Dict[str, str]) -> List[str]:
        """
        Resolve a manifest-syntax dependency map; returns canonical classpath
        entries in the order the tool reported them.
        """
        if not dependencies:
            return []
        coordinates = [to_registry(name, spec) for name, spec in dependencies.items()]
        return self.promote(self.fetch(coordinates))

    def fetch(self, coordinates: List[str]) -> List[str]:
        """Run the fetch tool; returns the raw paths it printed."""
        if not coordinates:
            return []
        for coordinate in coordinates:
            if not is_valid_registry_coordinate(coordinate):
                raise ResolutionError(
                    f'Invalid dependency format: "{coordinate}". '
                    f"Expected format: groupId:artifactId:version"
                )

        cmd = build_fetch_command(coordinates, self.repositories, command=self.command)
        log.info(f"Resolving {len(coordinates)} dependenc{'y' if len(coordinates) == 1 else 'ies'} "
                 f"via {self.command}")
        log.debug(f"Running: {' '.join(cmd)}")
        start = time.time()
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise ResolutionError(
                f"'{self.command}' not found – install coursier or set CAIRN_RESOLVER."
            ) from exc

        for line in (result.stderr or "").splitlines():
            if line.strip():
                log.debug(line)

        if result.returncode != 0:
            raise ResolutionError(
                (result.stderr or "").strip()
                or f"{self.command} exited with code {result.returncode}"
            )

        paths = [p for p in (result.stdout or "").strip().split(cfg.CLASSPATH_SEPARATOR) if p]
        log.success(f"Resolved {len(paths)} artifact(s) in {log.duration(time.time() - start)}")
        return paths

    def promote(self, paths: List[str]) -> List[str]:
        """Move fetched jars into the store; non-jar and unparseable paths pass through."""
        entries: List[str] = []
        self.artifacts = []
        for raw in paths:
            if not raw.endswith(".jar"):
                entries.append(raw)
                continue
            coordinate = parse_artifact_path(raw)
            if coordinate is None:
                log.debug(f"Unrecognised artifact layout, using as-is: {raw}")
                entries.append(raw)
                continue
            canonical = ensure_canonical_copy(Path(raw), coordinate, self.store)
            link = ensure_convenience_link(self.project_dir, self.store, coordinate.group)
            self.artifacts.append(CachedArtifact(coordinate, canonical, link))
            entries.append(str(canonical))
        return entries
