"""
Project manifest (``cairn.json``).

Every project root contains a ``cairn.json`` that declares its identity,
its dependencies and its directory layout::

    {
      "name":         "com.example@api",
      "version":      "1.2.0",
      "entry":        "com.example.Main",
      "dependencies": {
        "com.example@common":   "^1.0.0",
        "org.slf4j@slf4j-api":  "2.0.9"
      },
      "repositories": ["https://repo1.maven.org/maven2"],
      "devDependencies": {
        "org.junit.jupiter@junit-jupiter":                      "5.10.2",
        "org.junit.platform@junit-platform-console-standalone": "1.10.2"
      },
      "java":         {"sourceDir": "src", "outputDir": "build/classes", "testDir": "test"},
      "packages":     ["apps/*", "packages/*"],
      "plugins":      ["java", {"name": "dev-server", "options": {"command": ["npm", "run", "dev"]}}],
      "port":         8080,
      "localRep":     false
    }

Only ``name`` is required.  Names may use either '@' or ':' between group and
artifact; they are normalised to '@' on load.  The manifest is parsed fresh
on every resolution pass and is treated as an immutable value: plugins that
transform it get a new instance back from :meth:`ProjectManifest.with_changes`.
"""
from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from cairn import config as cfg
from cairn.coordinates import artifact_of, normalize_name
from cairn.errors import ManifestError


@dataclass(frozen=True)
class ProjectManifest:
    path:         Path                  # absolute path to cairn.json
    name:         str                   # manifest syntax, e.g. "com.example@api"
    version:      str            = cfg.DEFAULT_VERSION
    dependencies: dict           = field(default_factory=dict)   # name → version spec
    repositories: list           = field(default_factory=list)   # repository URLs
    source_dir:   str            = cfg.DEFAULT_SOURCE_DIR
    output_dir:   str            = cfg.DEFAULT_OUTPUT_DIR
    entry:        Optional[str]  = None
    port:         int            = cfg.DEFAULT_PORT
    local_rep:    bool           = False
    packages:     list           = field(default_factory=list)   # workspace globs
    plugins:      list           = field(default_factory=list)   # names or {"name", "options"}
    dev_dependencies: dict       = field(default_factory=dict)   # test-only name → version spec
    test_dir:     Optional[str]  = None                          # overrides cfg.TEST_DIRS lookup
    extra:        dict           = field(default_factory=dict)   # plugin-provided values

    # ── factories ──────────────────────────────────────────────────────────

    @classmethod
    def load(cls, project_dir: Path) -> Optional["ProjectManifest"]:
        """
        Load ``cairn.json`` from *project_dir*.
        Returns ``None`` if the file does not exist.
        Raises ``ManifestError`` on malformed JSON or a missing ``name``.
        """
        manifest_path = Path(project_dir).resolve() / cfg.MANIFEST_FILE
        if not manifest_path.exists():
            return None
        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ManifestError(f"Malformed {manifest_path}: {exc}") from exc
        except OSError as exc:
            raise ManifestError(f"Cannot read {manifest_path}: {exc}") from exc
        return cls.from_dict(data, manifest_path)

    @classmethod
    def from_dict(cls, data: Any, manifest_path: Path) -> "ProjectManifest":
        if not isinstance(data, dict):
            raise ManifestError(f"{manifest_path}: expected a JSON object")

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ManifestError(f"{manifest_path}: missing required field 'name'")

        deps = data.get("dependencies") or {}
        if not isinstance(deps, dict):
            raise ManifestError(f"{manifest_path}: 'dependencies' must be an object")

        java     = _typed(data, "java", dict, "an object", manifest_path)
        dev_deps = _typed(data, "devDependencies", dict, "an object", manifest_path)
        packages = _typed(data, "packages", list, "a list", manifest_path)
        plugins  = _typed(data, "plugins", list, "a list", manifest_path)
        repos    = _typed(data, "repositories", list, "a list", manifest_path)
        entry    = data.get("entry")
        if entry is not None and not isinstance(entry, str):
            raise ManifestError(f"{manifest_path}: 'entry' must be a class name string")
        for key in ("sourceDir", "outputDir", "testDir"):
            if java.get(key) is not None and not isinstance(java[key], str):
                raise ManifestError(f"{manifest_path}: 'java.{key}' must be a string")
        try:
            port = int(data.get("port") or cfg.DEFAULT_PORT)
        except (TypeError, ValueError) as exc:
            raise ManifestError(f"{manifest_path}: 'port' must be an integer") from exc

        return cls(
            path         = manifest_path,
            name         = normalize_name(name),
            version      = str(data.get("version") or cfg.DEFAULT_VERSION),
            dependencies = {normalize_name(k): str(v) for k, v in deps.items()},
            repositories = _repository_urls(repos),
            source_dir   = java.get("sourceDir") or cfg.DEFAULT_SOURCE_DIR,
            output_dir   = java.get("outputDir") or cfg.DEFAULT_OUTPUT_DIR,
            entry        = entry,
            port         = port,
            local_rep    = bool(data.get("localRep", False)),
            packages     = list(packages),
            plugins      = list(plugins),
            dev_dependencies = {normalize_name(k): str(v) for k, v in dev_deps.items()},
            test_dir     = java.get("testDir"),
        )

    # ── derived paths ──────────────────────────────────────────────────────

    @property
    def project_dir(self) -> Path:
        return self.path.parent

    @property
    def source_path(self) -> Path:
        return self.project_dir / self.source_dir

    @property
    def output_path(self) -> Path:
        return self.project_dir / self.output_dir

    @property
    def test_path(self) -> Optional[Path]:
        """The configured test root, else the first existing candidate, else ``None``."""
        if self.test_dir:
            return self.project_dir / self.test_dir
        for rel in cfg.TEST_DIRS:
            if (self.project_dir / rel).is_dir():
                return self.project_dir / rel
        return None

    @property
    def test_output_path(self) -> Path:
        return self.project_dir / cfg.TEST_OUTPUT_DIR

    @property
    def cache_path(self) -> Path:
        return self.project_dir / cfg.CLASSPATH_CACHE

    @property
    def artifact_id(self) -> str:
        return artifact_of(self.name)

    def effective_repositories(self) -> list[str]:
        return list(self.repositories) or list(cfg.DEFAULT_REPOSITORIES)

    # ── immutable updates ──────────────────────────────────────────────────

    def with_changes(self, **changes: Any) -> "ProjectManifest":
        """Return a copy with *changes* applied; unknown keys go into ``extra``."""
        known = {f.name for f in dataclasses.fields(self)}
        extra = dict(self.extra)
        for key in [k for k in changes if k not in known]:
            extra[key] = changes.pop(key)
        if extra != self.extra:
            changes["extra"] = extra
        return dataclasses.replace(self, **changes)

    def __repr__(self) -> str:
        return f"ProjectManifest({self.name} {self.version}  [{self.project_dir}])"


def _typed(data: dict, key: str, kind: type, label: str, manifest_path: Path) -> Any:
    """``data[key]`` (or an empty *kind* when unset), checked against *kind*."""
    value = data.get(key)
    if value is None:
        return kind()
    if not isinstance(value, kind):
        raise ManifestError(f"{manifest_path}: '{key}' must be {label}")
    return value


def _repository_urls(entries: list) -> list[str]:
    urls: list[str] = []
    for entry in entries:
        if isinstance(entry, str):
            urls.append(entry)
        elif isinstance(entry, dict) and entry.get("url"):
            urls.append(entry["url"])
    return urls
