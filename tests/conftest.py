"""
Shared pytest fixtures for cairn tests.

``workspace`` builds throw-away project trees (directories with cairn.json,
sources and compiled outputs) under ``tmp_path``.  The user-scoped store is
redirected into the temp dir for every test so nothing touches ~/.cairn.
"""
from __future__ import annotations

import json
import os
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from cairn import config as cfg
from cairn.manifest import ProjectManifest
from cairn.workspace import LocalProject


# =============================================================================
# Workspace builder
# =============================================================================


class WorkspaceBuilder:
    """Creates projects below *root*; every helper returns the path it wrote."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def project(
        self,
        rel: str,
        name: str,
        version: Optional[str] = "1.0.0",
        dependencies: Optional[Dict[str, str]] = None,
        **fields,
    ) -> Path:
        project_dir = self.root / rel
        project_dir.mkdir(parents=True, exist_ok=True)
        data: dict = {"name": name}
        if version is not None:
            data["version"] = version
        if dependencies:
            data["dependencies"] = dependencies
        data.update(fields)
        (project_dir / cfg.MANIFEST_FILE).write_text(json.dumps(data), encoding="utf-8")
        return project_dir

    def raw_manifest(self, rel: str, text: str) -> Path:
        project_dir = self.root / rel
        project_dir.mkdir(parents=True, exist_ok=True)
        (project_dir / cfg.MANIFEST_FILE).write_text(text, encoding="utf-8")
        return project_dir

    @staticmethod
    def source(project_dir: Path, rel: str, body: str = "") -> Path:
        path = project_dir / cfg.DEFAULT_SOURCE_DIR / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body or f"class {path.stem} {{}}\n", encoding="utf-8")
        return path

    @staticmethod
    def compiled(project_dir: Path, rel: str) -> Path:
        path = project_dir / cfg.DEFAULT_OUTPUT_DIR / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\xca\xfe\xba\xbe")
        return path


def set_mtime(path: Path, mtime: float) -> None:
    os.utime(path, (mtime, mtime))


def make_projects(graph: Dict[str, List[str]]) -> Dict[str, LocalProject]:
    """In-memory projects: ``{"g@a": ["g@b"], ...}`` with "*" version specs."""
    projects: Dict[str, LocalProject] = {}
    for name, deps in graph.items():
        project_dir = Path("/ws") / name.split("@")[-1]
        manifest = ProjectManifest.from_dict(
            {"name": name, "dependencies": {d: "*" for d in deps}},
            project_dir / cfg.MANIFEST_FILE,
        )
        projects[name] = LocalProject(name, project_dir, manifest)
    return projects


class FakeRun:
    """
    Stand-in for ``subprocess.run``: records every command and answers with
    the result produced by *respond* (default: exit 0, empty output).
    """

    def __init__(self, respond: Optional[Callable[[list], subprocess.CompletedProcess]] = None):
        self.calls: List[list] = []
        self.respond = respond

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        if self.respond is not None:
            return self.respond(list(cmd))
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    def tools(self) -> List[str]:
        return [Path(c[0]).name for c in self.calls]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cairn_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setattr(cfg, "CAIRN_HOME", home)
    monkeypatch.setattr(cfg, "GLOBAL_LIBS_DIR", home / "libs")
    monkeypatch.setattr(cfg, "RESOLVER_CACHE_DIR", home / "cache")
    monkeypatch.setattr(cfg, "JAVA_HOME", None)
    return home


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    root = tmp_path / "ws"
    root.mkdir()
    return WorkspaceBuilder(root)


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> FakeRun:
    fake = FakeRun()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake
