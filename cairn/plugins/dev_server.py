"""
Front-end dev-server bridge.

The only thing the build core hands the dev server is a port: ``config``
picks one (the configured port, else the first free port from 5173) and
threads it through the config pipeline as ``extra["dev_server_port"]``.
``config_resolved`` writes ``.cairn/dev-server.json`` for the front-end
tooling, ``dev_server`` launches the configured command under supervision
and ``cleanup`` terminates it.
"""
from __future__ import annotations

import os
import shlex
import socket
from typing import List, Optional

from cairn import config as cfg
from cairn import fs
from cairn import logger as log
from cairn.manifest import ProjectManifest
from cairn.plugins.manager import Plugin, PluginContext
from cairn.process import SupervisedProcess

PORT_KEY = "dev_server_port"


def is_port_free(port: int, host: str = "127.0.0.1") -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def find_free_port(start: int = cfg.DEV_SERVER_DEFAULT_PORT, attempts: int = 50) -> int:
    for port in range(start, start + attempts):
        if is_port_free(port):
            return port
    raise OSError(f"No free port in {start}-{start + attempts - 1}")


class DevServerPlugin(Plugin):
    """
    Options:
      command  – list or shell-style string, e.g. ``"npm run dev"``
      port     – fixed port (skips the free-port search)
      cwd      – working directory relative to the project root
    """

    name = "dev-server"

    def __init__(self, options: Optional[dict] = None) -> None:
        super().__init__(options)
        self.process: Optional[SupervisedProcess] = None

    def _command(self) -> List[str]:
        command = self.options.get("command") or []
        if isinstance(command, str):
            return shlex.split(command)
        return [str(c) for c in command]

    def config(self, config: ProjectManifest) -> dict:
        port = self.options.get("port") or config.extra.get(PORT_KEY)
        if not port:
            port = find_free_port()
        log.debug(f"[dev-server] port {port}")
        return {PORT_KEY: int(port)}

    def config_resolved(self, config: ProjectManifest) -> None:
        port = config.extra.get(PORT_KEY)
        fs.write_json(config.project_dir / cfg.DEV_SERVER_FILE, {
            "port":        port,
            "backendPort": config.port,
            "proxy":       f"http://localhost:{config.port}",
        })

    def dev_server(self, ctx: PluginContext) -> None:
        command = self._command()
        if not command:
            log.warn("[dev-server] no 'command' configured — nothing to start.")
            return
        port = ctx.config.extra.get(PORT_KEY)
        env = os.environ.copy()
        env["PORT"] = str(port)
        env["CAIRN_BACKEND_PORT"] = str(ctx.config.port)

        self.process = SupervisedProcess(
            "dev-server",
            lambda: command,
            cwd=ctx.root / self.options.get("cwd", "."),
            env=env,
        )
        if self.process.start():
            log.success(f"[dev-server] http://localhost:{port}")

    def cleanup(self) -> None:
        if self.process is not None:
            self.process.stop()
            self.process = None
