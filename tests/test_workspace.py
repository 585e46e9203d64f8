import pytest

from cairn.errors import VersionMismatchError
from cairn.workspace import (
    LocalProjectResolver,
    discover_projects,
    find_project_roots,
    list_projects,
    version_matches,
)


# =============================================================================
# Version matching
# =============================================================================


@pytest.mark.parametrize("required, actual, expected", [
    ("*", "9.9.9", True),
    ("^1.2.0", "1.9.3", True),
    ("^1.2.0", "2.0.0", False),
    ("~1.2.0", "1.2.9", True),
    ("~1.2.0", "1.3.0", False),
    ("1.2.0", "1.2.0", True),
    ("1.2.0", "1.2.1", False),
    ("1.0.0-beta", "1.0.0-beta", True),
])
def test_version_matches(required, actual, expected):
    assert version_matches(required, actual) is expected


# =============================================================================
# Discovery
# =============================================================================


def test_project_roots_are_nearest_first(workspace):
    outer = workspace.project(".", "com.acme@root")
    api = workspace.project("apps/api", "com.acme@api")
    (api / "src" / "com").mkdir(parents=True)

    assert find_project_roots(api / "src" / "com") == [api.resolve(), outer.resolve()]


def test_siblings_are_discovered(workspace):
    api = workspace.project("api", "com.acme@api")
    common = workspace.project("common", "com.acme@common")

    projects = discover_projects(api)

    assert set(projects) == {"com.acme@api", "com.acme@common"}
    assert projects["com.acme@common"].project_dir == common.resolve()


def test_hidden_and_known_non_project_dirs_are_skipped(workspace):
    api = workspace.project("api", "com.acme@api")
    workspace.project(".hidden", "com.acme@hidden")
    workspace.project("node_modules", "com.acme@npm")
    workspace.project("target", "com.acme@target")

    assert list(discover_projects(api)) == ["com.acme@api"]


def test_malformed_sibling_manifest_is_skipped(workspace):
    api = workspace.project("api", "com.acme@api")
    workspace.raw_manifest("broken", "{ this is not json")
    workspace.project("zeta", "com.acme@zeta")

    assert set(discover_projects(api)) == {"com.acme@api", "com.acme@zeta"}


@pytest.mark.parametrize("fields", [
    {"java": "17"},
    {"port": "http"},
    {"packages": "apps/*"},
    {"plugins": "java"},
])
def test_wrongly_typed_sibling_manifest_is_skipped(workspace, fields):
    api = workspace.project("api", "com.acme@api")
    workspace.project("bad", "com.acme@bad", **fields)
    workspace.project("zeta", "com.acme@zeta")

    assert set(discover_projects(api)) == {"com.acme@api", "com.acme@zeta"}


def test_nearer_project_wins_over_farther_one(workspace):
    # ws/ (root)
    # ├── common/          com.acme@common 2.0.0   (sibling of the outer root)
    # └── inner/ (root)
    #     ├── apps/api     (start here)
    #     └── apps/common  com.acme@common 1.0.0   (sibling of the nearest root)
    workspace.project(".", "com.acme@outer")
    workspace.project("common", "com.acme@common", version="2.0.0")
    workspace.project("inner", "com.acme@inner")
    api = workspace.project("inner/apps/api", "com.acme@api")
    near = workspace.project("inner/apps/common", "com.acme@common", version="1.0.0")

    projects = discover_projects(api)

    assert projects["com.acme@common"].project_dir == near.resolve()
    assert projects["com.acme@common"].version == "1.0.0"


def test_workspace_package_globs(workspace):
    root = workspace.project(".", "com.acme@root", packages=["packages/*"])
    util = workspace.project("packages/util", "com.acme@util")

    projects = discover_projects(root)

    assert projects["com.acme@util"].project_dir == util.resolve()
    assert list_projects(root) == [root.resolve(), util.resolve()]


def test_package_globs_skip_hidden_and_known_non_project_dirs(workspace):
    root = workspace.project(".", "com.acme@root", packages=["packages/*"])
    util = workspace.project("packages/util", "com.acme@util")
    workspace.project("packages/.cache", "com.acme@cached")
    workspace.project("packages/node_modules", "com.acme@npm")

    assert list_projects(root) == [root.resolve(), util.resolve()]


# =============================================================================
# Resolution
# =============================================================================


def test_no_local_matches_returns_input_as_remainder(workspace):
    api = workspace.project("api", "com.acme@api")
    requested = {"org.slf4j@slf4j-api": "2.0.9", "com.google.guava@guava": "33.0.0-jre"}

    result = LocalProjectResolver(api).resolve_dependencies(requested)

    assert result.local_entries == []
    assert result.local_classpath == ""
    assert result.remainder == requested


def test_local_dependency_resolves_to_output_dir(workspace):
    api = workspace.project("api", "com.acme@api")
    common = workspace.project("common", "com.acme@common", version="1.4.0")
    requested = {"com.acme@common": "^1.0.0", "org.slf4j@slf4j-api": "2.0.9"}

    result = LocalProjectResolver(api).resolve_dependencies(requested)

    assert result.local_entries == [str(common.resolve() / "build" / "classes")]
    assert result.remainder == {"org.slf4j@slf4j-api": "2.0.9"}


def test_registry_syntax_request_matches_local_project(workspace):
    api = workspace.project("api", "com.acme@api")
    workspace.project("common", "com.acme@common")

    result = LocalProjectResolver(api).resolve_dependencies({"com.acme:common": "*"})

    assert len(result.local_entries) == 1
    assert result.remainder == {}


def test_version_mismatch_names_both_versions(workspace):
    api = workspace.project("api", "com.acme@api")
    workspace.project("common", "com.acme@common", version="2.1.0")

    with pytest.raises(VersionMismatchError) as info:
        LocalProjectResolver(api).resolve_dependencies({"com.acme@common": "^1.0.0"})

    assert "^1.0.0" in str(info.value)
    assert "2.1.0" in str(info.value)


def test_unversioned_local_project_counts_as_zero(workspace):
    api = workspace.project("api", "com.acme@api")
    workspace.project("common", "com.acme@common", version=None)

    result = LocalProjectResolver(api).resolve_dependencies({"com.acme@common": "0.0.0"})

    assert len(result.local_entries) == 1


def test_resolution_is_idempotent(workspace):
    api = workspace.project("api", "com.acme@api")
    workspace.project("a-lib", "com.acme@a-lib")
    workspace.project("b-lib", "com.acme@b-lib")
    requested = {"com.acme@b-lib": "*", "com.acme@a-lib": "*", "x@y": "1"}
    resolver = LocalProjectResolver(api)

    first = resolver.resolve_dependencies(requested)
    second = resolver.resolve_dependencies(requested)

    assert first.local_entries == second.local_entries
    assert first.remainder == second.remainder
    assert first.local_entries[0].startswith(str((api.parent / "b-lib").resolve()))
