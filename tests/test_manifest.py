import json

import pytest

from cairn import config as cfg
from cairn.errors import ManifestError
from cairn.manifest import ProjectManifest


def test_missing_manifest_returns_none(tmp_path):
    assert ProjectManifest.load(tmp_path) is None


def test_defaults_are_filled(workspace):
    project_dir = workspace.project("app", "com.acme@app", version=None)
    m = ProjectManifest.load(project_dir)

    assert m.name == "com.acme@app"
    assert m.version == cfg.DEFAULT_VERSION
    assert m.source_path == project_dir.resolve() / "src"
    assert m.output_path == project_dir.resolve() / "build" / "classes"
    assert m.cache_path == project_dir.resolve() / ".cairn" / "classpath.json"
    assert m.dependencies == {}
    assert m.port == cfg.DEFAULT_PORT
    assert m.local_rep is False
    assert m.artifact_id == "app"


def test_registry_syntax_names_are_normalised(workspace):
    project_dir = workspace.project(
        "app", "com.acme:app",
        dependencies={"org.slf4j:slf4j-api": "2.0.9", "com.acme@common": "*"},
    )
    m = ProjectManifest.load(project_dir)

    assert m.name == "com.acme@app"
    assert list(m.dependencies) == ["org.slf4j@slf4j-api", "com.acme@common"]


def test_layout_overrides_and_repositories(workspace):
    project_dir = workspace.project(
        "app", "com.acme@app",
        java={"sourceDir": "src/main/java", "outputDir": "out/classes"},
        repositories=["https://a.example/maven2", {"url": "https://b.example/repo"}, {"id": "x"}],
        localRep=True,
        entry="com.acme.Main",
    )
    m = ProjectManifest.load(project_dir)

    assert m.source_path.parts[-3:] == ("src", "main", "java")
    assert m.output_path.parts[-2:] == ("out", "classes")
    assert m.repositories == ["https://a.example/maven2", "https://b.example/repo"]
    assert m.local_rep is True
    assert m.entry == "com.acme.Main"


def test_test_layout_and_dev_dependencies(workspace):
    project_dir = workspace.project(
        "app", "com.acme@app",
        devDependencies={"org.junit.jupiter:junit-jupiter": "5.10.2"},
    )
    m = ProjectManifest.load(project_dir)

    assert m.dev_dependencies == {"org.junit.jupiter@junit-jupiter": "5.10.2"}
    assert m.test_path is None
    assert m.test_output_path == project_dir.resolve() / "build" / "test-classes"

    (project_dir / "tests").mkdir()
    assert m.test_path == project_dir.resolve() / "tests"
    assert m.with_changes(test_dir="spec").test_path == project_dir.resolve() / "spec"


def test_default_repositories_when_none_configured(workspace):
    m = ProjectManifest.load(workspace.project("app", "com.acme@app"))
    assert m.effective_repositories() == cfg.DEFAULT_REPOSITORIES


@pytest.mark.parametrize("text", [
    "{not json",
    json.dumps(["a", "list"]),
    json.dumps({"version": "1.0.0"}),
    json.dumps({"name": "   "}),
    json.dumps({"name": "a@b", "dependencies": ["x"]}),
    json.dumps({"name": "a@b", "java": "17"}),
    json.dumps({"name": "a@b", "java": {"sourceDir": ["src"]}}),
    json.dumps({"name": "a@b", "port": "http"}),
    json.dumps({"name": "a@b", "port": [8080]}),
    json.dumps({"name": "a@b", "packages": "apps/*"}),
    json.dumps({"name": "a@b", "plugins": "java"}),
    json.dumps({"name": "a@b", "repositories": "https://r1"}),
    json.dumps({"name": "a@b", "entry": 42}),
    json.dumps({"name": "a@b", "devDependencies": ["junit"]}),
])
def test_invalid_manifests_raise(workspace, text):
    project_dir = workspace.raw_manifest("bad", text)
    with pytest.raises(ManifestError):
        ProjectManifest.load(project_dir)


def test_with_changes_returns_new_value(workspace):
    m = ProjectManifest.load(workspace.project("app", "com.acme@app"))
    changed = m.with_changes(port=9000, dev_server_port=5174)

    assert changed is not m
    assert changed.port == 9000
    assert changed.extra == {"dev_server_port": 5174}
    assert m.port == cfg.DEFAULT_PORT
    assert m.extra == {}
