"""
Thin wrappers around the JDK tools (``javac``, ``java``, ``jar``) and the
JUnit Platform console launcher.

These are opaque subprocess calls: cairn decides *what* to compile and with
which classpath, the tools do the rest.  Compiler and archiver output is
captured and, on a non-zero exit, raised verbatim inside
``CompilationError`` so the actual diagnostic stays readable.
"""
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from cairn import config as cfg
from cairn import logger as log
from cairn.errors import CompilationError


@dataclass
class CompileResult:
    compiled: int
    output_dir: Path
    elapsed: float = 0.0
    output: str = ""


def _run_captured(cmd: List[str], cwd: Path, tool: str) -> subprocess.CompletedProcess:
    log.debug(f"Running: {' '.join(cmd)}  (in {cwd})")
    try:
        return subprocess.run(cmd, cwd=cwd, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise CompilationError(
            f"'{tool}' not found – install a JDK and add it to PATH or set JAVA_HOME."
        ) from exc


def run_javac(
    sources: List[Path],
    output_dir: Path,
    classpath: str = "",
    *,
    cwd: Optional[Path] = None,
    extra_args: Optional[List[str]] = None,
) -> CompileResult:
    """
    Compile *sources* into *output_dir*.
    Raises ``CompilationError`` with the compiler's output on failure.
    """
    if not sources:
        return CompileResult(0, output_dir)

    output_dir.mkdir(parents=True, exist_ok=True)
    cmd = [cfg.java_tool("javac"), "-d", str(output_dir), "-encoding", cfg.ENCODING]
    if classpath:
        cmd += ["-cp", classpath]
    if extra_args:
        cmd += extra_args
    cmd += [str(s) for s in sources]

    log.info(f"Compiling {len(sources)} source file(s) → {output_dir}")
    start = time.time()
    result = _run_captured(cmd, cwd or output_dir.parent, "javac")
    elapsed = time.time() - start
    output = ((result.stdout or "") + (result.stderr or "")).strip()

    if result.returncode != 0:
        raise CompilationError(output or f"javac exited with code {result.returncode}")
    if output:
        log.debug(output)
    log.success(f"Compiled {len(sources)} file(s) in {log.duration(elapsed)}")
    return CompileResult(len(sources), output_dir, elapsed, output)


def run_java(
    entry: str,
    classpath: str,
    *,
    cwd: Path,
    args: Optional[List[str]] = None,
    env: Optional[Dict[str, str]] = None,
) -> int:
    """
    Run *entry* (a main class) in the foreground, streaming output live.
    Returns the process exit code.
    """
    cmd = java_command(entry, classpath, args)
    log.info(f"Running {entry}")
    log.debug(f"Command: {' '.join(cmd)}")
    try:
        # stdout/stderr go straight to the terminal
        result = subprocess.run(cmd, cwd=cwd, env=env)
    except FileNotFoundError as exc:
        raise CompilationError(f"'{cmd[0]}' not found – install a JDK or set JAVA_HOME.") from exc
    return result.returncode


def java_command(entry: str, classpath: str, args: Optional[List[str]] = None) -> List[str]:
    cmd = [cfg.java_tool("java")]
    if classpath:
        cmd += ["-cp", classpath]
    cmd.append(entry)
    if args:
        cmd += args
    return cmd


def launcher_command(
    launcher: Path,
    classpath: str,
    scan_dir: Path,
    args: Optional[List[str]] = None,
) -> List[str]:
    """JUnit Platform console launcher invocation scanning *scan_dir* for tests."""
    cmd = [cfg.java_tool("java"), "-jar", str(launcher)]
    if classpath:
        cmd += ["--class-path", classpath]
    cmd += ["--scan-class-path", str(scan_dir)]
    if args:
        cmd += args
    return cmd


def run_suite(
    launcher: Path,
    classpath: str,
    scan_dir: Path,
    *,
    cwd: Path,
    args: Optional[List[str]] = None,
) -> int:
    """
    Run the test launcher in the foreground; its report streams straight to
    the terminal.  Returns the launcher's exit code (non-zero on failures).
    """
    cmd = launcher_command(launcher, classpath, scan_dir, args)
    log.info(f"Running tests from {scan_dir}")
    log.debug(f"Command: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, cwd=cwd)
    except FileNotFoundError as exc:
        raise CompilationError(f"'{cmd[0]}' not found – install a JDK or set JAVA_HOME.") from exc
    return result.returncode


def archive(output_dir: Path, jar_path: Path, *, entry: Optional[str] = None) -> Path:
    """
    Package *output_dir* into *jar_path* with ``jar``.
    *entry* becomes the manifest Main-Class when given.
    """
    jar_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = [cfg.java_tool("jar")]
    if entry:
        cmd += ["--create", "--file", str(jar_path), "--main-class", entry]
    else:
        cmd += ["--create", "--file", str(jar_path)]
    cmd += ["-C", str(output_dir), "."]

    log.info(f"Archiving {output_dir} → {jar_path.name}")
    result = _run_captured(cmd, output_dir.parent, "jar")
    if result.returncode != 0:
        raise CompilationError(
            ((result.stdout or "") + (result.stderr or "")).strip()
            or f"jar exited with code {result.returncode}"
        )
    log.success(f"Archive ready: {jar_path}")
    return jar_path
