"""
Local project resolution: find sibling / ancestor projects in the workspace
and decide which requested dependencies they satisfy.

Discovery
---------
Starting from the working directory, walk upward and collect every ancestor
that contains a ``cairn.json`` ("project roots"), nearest first.  For each
root, nearest first:

  1. the root itself,
  2. directories matched by the root manifest's ``packages`` globs,
  3. the root's immediate sibling directories (hidden and known
     non-project directories skipped).

Each project is registered under its declared name only if that name is not
registered yet, so a closer copy of a project always wins over one found
further away.  Malformed manifests are skipped with a warning; discovery
never aborts because of one.

Resolution
----------
:meth:`LocalProjectResolver.resolve_dependencies` splits a dependency map into
local classpath entries (the compiled-output directory of each matching local
project, in request order) and a remainder left for remote resolution.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from cairn import config as cfg
from cairn import logger as log
from cairn.coordinates import normalize_name
from cairn.errors import ManifestError, VersionMismatchError
from cairn.manifest import ProjectManifest


# ─────────────────────────────────────────────────────────────────────────────
# Data types
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class LocalProject:
    """A project discovered in the workspace during one resolution pass."""
    name:        str
    project_dir: Path
    manifest:    ProjectManifest

    @property
    def version(self) -> str:
        return self.manifest.version

    @property
    def output_path(self) -> Path:
        return self.manifest.output_path

    @property
    def dependencies(self) -> dict:
        return self.manifest.dependencies

    def __repr__(self) -> str:
        return f"LocalProject({self.name} → {self.project_dir})"


@dataclass
class ResolutionResult:
    """
    local_entries – output directories of locally satisfied dependencies
    remainder     – requested coordinates left for remote resolution
    """
    local_entries: List[str]      = field(default_factory=list)
    remainder:     Dict[str, str] = field(default_factory=dict)

    @property
    def local_classpath(self) -> str:
        return cfg.CLASSPATH_SEPARATOR.join(self.local_entries)


# ─────────────────────────────────────────────────────────────────────────────
# Version matching
# ─────────────────────────────────────────────────────────────────────────────

def _components(version: str) -> List[str]:
    return version.strip().split(".")


def version_matches(required: str, actual: str) -> bool:
    """
    Simplified range check for local projects.

      ``*``        any version
      ``^1.4.0``   same first component      (1.x.y)
      ``~1.4.0``   same first two components (1.4.y)
      otherwise    exact string match

    Components are compared as plain strings; pre-release tags get no
    special treatment.
    """
    required = required.strip()
    actual   = actual.strip()
    if required == "*":
        return True
    if required[:1] in ("^", "~"):
        width = 1 if required[0] == "^" else 2
        wanted = _components(required[1:])[:width]
        return _components(actual)[:len(wanted)] == wanted
    return required == actual


# ─────────────────────────────────────────────────────────────────────────────
# Discovery
# ─────────────────────────────────────────────────────────────────────────────

def _is_candidate_dir(path: Path) -> bool:
    name = path.name
    return path.is_dir() and not name.startswith(".") and name not in cfg.SKIP_DIRS


def find_project_roots(start: Path) -> List[Path]:
    """Every directory from *start* upward that holds a manifest, nearest first."""
    current = Path(start).resolve()
    roots: List[Path] = []
    for directory in (current, *current.parents):
        if (directory / cfg.MANIFEST_FILE).is_file():
            roots.append(directory)
    return roots


def _load_quietly(project_dir: Path) -> Optional[ProjectManifest]:
    try:
        return ProjectManifest.load(project_dir)
    except ManifestError as exc:
        log.warn(f"Skipping {project_dir}: {exc}")
        return None


def _package_dirs(root: Path, manifest: Optional[ProjectManifest]) -> List[Path]:
    if manifest is None or not manifest.packages:
        return []
    found: List[Path] = []
    for pattern in manifest.packages:
        for match in sorted(root.glob(pattern)):
            if _is_candidate_dir(match) and (match / cfg.MANIFEST_FILE).is_file():
                found.append(match.resolve())
    return found


def _sibling_dirs(root: Path) -> List[Path]:
    parent = root.parent
    if parent == root:
        return []
    try:
        entries = sorted(parent.iterdir())
    except OSError as exc:
        log.warn(f"Cannot scan {parent}: {exc}")
        return []
    return [
        entry.resolve() for entry in entries
        if entry.resolve() != root
        and _is_candidate_dir(entry)
        and (entry / cfg.MANIFEST_FILE).is_file()
    ]


def _candidate_dirs(start: Path) -> List[Path]:
    """Candidate project directories in discovery (proximity) order."""
    ordered: List[Path] = []
    seen: set = set()

    def _add(path: Path) -> None:
        if path not in seen:
            seen.add(path)
            ordered.append(path)

    for root in find_project_roots(start):
        _add(root)
        for pkg in _package_dirs(root, _load_quietly(root)):
            _add(pkg)
        for sibling in _sibling_dirs(root):
            _add(sibling)
    return ordered


def discover_projects(start: Path) -> Dict[str, LocalProject]:
    """
    Return ``{name: LocalProject}`` for every project visible from *start*.
    The first (nearest) registration of a name wins.
    """
    projects: Dict[str, LocalProject] = {}
    for project_dir in _candidate_dirs(start):
        manifest = _load_quietly(project_dir)
        if manifest is None:
            continue
        if manifest.name in projects:
            log.debug(
                f"Ignoring {project_dir}: '{manifest.name}' already provided by "
                f"{projects[manifest.name].project_dir}"
            )
            continue
        projects[manifest.name] = LocalProject(manifest.name, project_dir, manifest)
        log.debug(f"Local project {manifest.name} → {project_dir}")
    return projects


def list_projects(start: Path) -> List[Path]:
    """All discoverable project directories, in discovery order."""
    return [p.project_dir for p in discover_projects(start).values()]


# ─────────────────────────────────────────────────────────────────────────────
# Resolver
# ─────────────────────────────────────────────────────────────────────────────

class LocalProjectResolver:
    """
    Answers "is this dependency satisfied by a workspace project, and where
    are its compiled classes?".  Each call re-scans the workspace; nothing is
    cached between resolution passes.
    """

    def __init__(self, working_dir: Path) -> None:
        self.working_dir = Path(working_dir).resolve()

    def projects(self) -> Dict[str, LocalProject]:
        return discover_projects(self.working_dir)

    def resolve_dependencies(
        self,
        requested: Dict[str, str],
        projects: Optional[Dict[str, LocalProject]] = None,
    ) -> ResolutionResult:
        """
        Split *requested* into local output directories and a remote remainder.
        Raises ``VersionMismatchError`` when a local project is found but its
        version does not satisfy the requested spec.
        """
        result = ResolutionResult()
        if not requested:
            return result

        local = projects if projects is not None else self.projects()
        for raw_name, spec in requested.items():
            project = local.get(normalize_name(raw_name))
            if project is None:
                result.remainder[raw_name] = spec
                continue
            if not version_matches(spec, project.version):
                raise VersionMismatchError(project.name, spec, project.version)
            result.local_entries.append(str(project.output_path))

        log.debug(
            f"Local resolution: {len(result.local_entries)} local, "
            f"{len(result.remainder)} remote"
        )
        return result
