"""
Supervised long-running subprocesses (the application in dev mode, the
front-end dev server).
"""
import signal
import subprocess
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

from cairn import logger as log


class SupervisedProcess:
    """
    A restartable subprocess that runs on its own daemon thread.

    ``restart()`` terminates the current process and launches a new one from
    a freshly built command, so the owner never blocks on the child and never
    has to replace this object.  The command is produced by *build_cmd* on
    every (re)start; returning ``None`` aborts the launch.
    """

    def __init__(
        self,
        name: str,
        build_cmd: Callable[[], Optional[List[str]]],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        self.name      = name
        self.build_cmd = build_cmd
        self.cwd       = cwd
        self.env       = env
        self._proc: Optional[subprocess.Popen]   = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    # ── internal ──────────────────────────────────────────────────────────

    def _wait(self, proc: subprocess.Popen) -> None:
        code = proc.wait()
        log.debug(f"[{self.name}] exited with code {code}")

    def _launch(self) -> bool:
        cmd = self.build_cmd()
        if not cmd:
            return False
        log.info(f"[{self.name}] {' '.join(cmd)}")
        try:
            with self._lock:
                self._proc = subprocess.Popen(cmd, cwd=self.cwd, env=self.env)
        except FileNotFoundError:
            log.error(f"[{self.name}] command not found: {cmd[0]}")
            return False
        self._thread = threading.Thread(target=self._wait, args=(self._proc,), daemon=True,
                                        name=self.name)
        self._thread.start()
        return True

    def _stop_proc(self) -> None:
        with self._lock:
            proc = self._proc
        if proc and proc.poll() is None:
            proc.send_signal(signal.SIGTERM)
            try:
                proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                proc.kill()

    # ── public ────────────────────────────────────────────────────────────

    def start(self) -> bool:
        return self._launch()

    def restart(self) -> bool:
        """Stop the current process and launch a fresh one."""
        log.info(f"[{self.name}] restarting…")
        self.stop()
        return self._launch()

    def stop(self) -> None:
        """Terminate gracefully, then wait for the thread."""
        self._stop_proc()
        if self._thread:
            self._thread.join(timeout=8)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self) -> None:
        """Block until the supervising thread finishes."""
        while self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=0.5)
