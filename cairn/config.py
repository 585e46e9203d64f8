"""
Central configuration for cairn.

Values come from the environment at import time, with defaults that work on a
plain developer machine.  Per-project layout (state dir, cache file, default
source/output dirs) is expressed relative to a project root.
"""
import os
from pathlib import Path

# ── Manifest ──────────────────────────────────────────────────────────────────
MANIFEST_FILE = "cairn.json"

# Manifest syntax uses '@' between group and artifact; the registry uses ':'.
MANIFEST_SEPARATOR = "@"
REGISTRY_SEPARATOR = ":"

# Platform path-list separator for classpath strings (';' on Windows, ':' elsewhere).
CLASSPATH_SEPARATOR = os.pathsep

# ── User-scoped home (~/.cairn) ──────────────────────────────────────────────
# Override with CAIRN_HOME, e.g. to keep CI caches inside the workspace.
CAIRN_HOME = Path(os.environ.get("CAIRN_HOME", Path.home() / ".cairn")).expanduser()

GLOBAL_LIBS_DIR    = CAIRN_HOME / "libs"     # canonical artifact store
RESOLVER_CACHE_DIR = CAIRN_HOME / "cache"    # resolver tool's own download cache

# ── Per-project layout ────────────────────────────────────────────────────────
STATE_DIR          = ".cairn"
CLASSPATH_CACHE    = f"{STATE_DIR}/classpath.json"
LOCAL_LIBS_DIR     = f"{STATE_DIR}/libs"        # convenience links
LOCAL_REPO_DIR     = f"{STATE_DIR}/repository"  # store used when localRep is on
DEV_SERVER_FILE    = f"{STATE_DIR}/dev-server.json"

DEFAULT_SOURCE_DIR = "src"
DEFAULT_OUTPUT_DIR = "build/classes"
BUILD_DIR          = "build"
DEFAULT_VERSION    = "0.0.0"
DEFAULT_PORT       = 8080
ENCODING           = "UTF-8"

SOURCE_EXTENSION   = ".java"
OUTPUT_EXTENSION   = ".class"

# ── Tests ─────────────────────────────────────────────────────────────────────
# Candidate test roots, first existing wins (``java.testDir`` overrides).
TEST_DIRS          = ("test", "tests")
TEST_OUTPUT_DIR    = "build/test-classes"
TEST_FILE_SUFFIXES = ("Test.java", "Tests.java")
# devDependencies entry that provides the JUnit Platform console launcher jar.
TEST_LAUNCHER_ARTIFACT = "junit-platform-console-standalone"

# Resource directories copied verbatim into the output dir after compiling.
RESOURCE_DIRS = ("src/resources", "src/main/resources")

# ── Remote resolution ─────────────────────────────────────────────────────────
# The external fetch tool (coursier CLI by default).
RESOLVER_COMMAND     = os.environ.get("CAIRN_RESOLVER", "cs")
RESOLVER_PARALLELISM = int(os.environ.get("CAIRN_RESOLVER_PARALLELISM", "4"))
# Resolved artifacts are immutable: never re-check them once cached.
RESOLVER_TTL         = os.environ.get("CAIRN_RESOLVER_TTL", "inf")

DEFAULT_REPOSITORIES = [
    "https://maven.aliyun.com/repository/public",
    "https://repo1.maven.org/maven2",
]

# Path markers that precede group segments in a repository cache layout.
REPOSITORY_LAYOUT_MARKERS = ("/maven2/", "/public/", "/repository/")

# ── Java toolchain ────────────────────────────────────────────────────────────
# Set JAVA_HOME to pick javac/java/jar from a specific JDK; otherwise PATH.
JAVA_HOME = os.environ.get("JAVA_HOME") or None

# ── Hot reload / dev server ───────────────────────────────────────────────────
HOT_RELOAD_DEBOUNCE     = float(os.environ.get("CAIRN_HOT_RELOAD_DEBOUNCE", "0.3"))
DEV_SERVER_DEFAULT_PORT = 5173

# ── Directories that are never treated as project roots ──────────────────────
SKIP_DIRS = {
    "node_modules", ".git", STATE_DIR, "dist", "build", ".cache",
    ".vscode", ".idea", "out", "target", "libs",
}


def global_store(project_dir: Path, local_rep: bool = False) -> Path:
    """Return the artifact store for *project_dir* (user-scoped unless localRep)."""
    if local_rep:
        return project_dir / LOCAL_REPO_DIR
    return GLOBAL_LIBS_DIR


def java_tool(name: str) -> str:
    """Resolve ``javac`` / ``java`` / ``jar`` against JAVA_HOME when set."""
    if JAVA_HOME:
        candidate = Path(JAVA_HOME) / "bin" / name
        if candidate.exists():
            return str(candidate)
    return name
