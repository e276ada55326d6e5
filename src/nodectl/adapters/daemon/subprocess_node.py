# src/nodectl/adapters/daemon/subprocess_node.py
from __future__ import annotations
import os
import re
import shlex
import shutil
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, IO, List, Optional, Sequence

import psutil

from nodectl.services.tmpdir import tmp_dir

_START_GRACE_S = 0.2
_POLL_S = 0.05


class NodeProcessError(RuntimeError):
    """Ошибка демона; stdout: захваченный вывод процесса (для диагностики)."""

    def __init__(self, message: str, *, stdout: Optional[str] = None) -> None:
        self.stdout = stdout
        super().__init__(message)


def _argv(cmd: Sequence[str] | str) -> List[str]:
    if isinstance(cmd, str):
        return shlex.split(cmd)
    return [str(c) for c in cmd]


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _render_addr(template: Optional[str]) -> Optional[str]:
    if not template:
        return None
    if "{port}" in template:
        return template.replace("{port}", str(_free_port()))
    return template


def _terminate_tree(pid: int, timeout_s: float) -> None:
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return
    try:
        procs = parent.children(recursive=True) + [parent]
    except psutil.NoSuchProcess:
        procs = [parent]
    for p in procs:
        try:
            p.terminate()
        except psutil.NoSuchProcess:
            pass
    _, alive = psutil.wait_procs(procs, timeout=timeout_s)
    for p in alive:
        try:
            p.kill()
        except psutil.NoSuchProcess:
            pass
    psutil.wait_procs(alive, timeout=timeout_s)


class SubprocessNode:
    """
    Узел, управляемый как обычный дочерний процесс:
      - init: создаёт рабочий каталог и (опционально) выполняет init_cmd
      - start: запускает cmd, вывод пишется в <path>/daemon.log, ждёт ready_pattern
      - stop: завершает дерево процессов; disposable-узел заодно чистит каталог
      - cleanup: останавливает (если нужно) и удаляет каталог; идемпотентен
    """

    def __init__(self, config: Dict[str, Any], *, tmp_root: Path) -> None:
        self._config = dict(config)
        self.type = str(config.get("type") or "proc")
        repo = config.get("repo")
        self.path = str(Path(repo).expanduser()) if repo else str(tmp_dir(tmp_root, self.type))
        # временный репозиторий по умолчанию одноразовый
        self.disposable = bool(config.get("disposable", repo is None))
        self.env: Dict[str, str] = {str(k): str(v) for k, v in (config.get("env") or {}).items()}
        self.initialized = False
        self.started = False
        self.clean = False
        self.api_addr: Optional[str] = None
        self.gateway_addr: Optional[str] = None
        self.grpc_addr: Optional[str] = None
        self._proc: Optional[subprocess.Popen] = None
        self._log_fh: Optional[IO[bytes]] = None

    # ---------- helpers ----------

    @property
    def log_path(self) -> Path:
        return Path(self.path) / "daemon.log"

    def _child_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env.update(self.env)
        env["NODECTL_REPO_PATH"] = self.path
        for key, value in (("NODECTL_API_ADDR", self.api_addr), ("NODECTL_GATEWAY_ADDR", self.gateway_addr), ("NODECTL_GRPC_ADDR", self.grpc_addr)):
            if value:
                env[key] = value
        return env

    def _run(self, cmd: Sequence[str] | str, what: str) -> str:
        result = subprocess.run(_argv(cmd), cwd=self.path, env=self._child_env(), capture_output=True, text=True)
        output = ((result.stdout or "") + (result.stderr or "")).strip()
        if result.returncode != 0:
            raise NodeProcessError(f"{what} command exited with code {result.returncode}", stdout=output or None)
        return output

    def _read_log(self) -> str:
        try:
            return self.log_path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return ""

    def _close_log(self) -> None:
        if self._log_fh is not None:
            self._log_fh.close()
            self._log_fh = None

    def _halt(self) -> None:
        proc = self._proc
        if proc is not None:
            if proc.poll() is None:
                _terminate_tree(proc.pid, float(self._config.get("stop_timeout", 5.0)))
            proc.poll()
        self._proc = None
        self._close_log()
        self.started = False

    def _wait_ready(self) -> None:
        assert self._proc is not None
        pattern = self._config.get("ready_pattern")
        regex = re.compile(pattern) if pattern else None
        timeout = float(self._config.get("start_timeout", 10.0))
        deadline = time.monotonic() + (timeout if regex else _START_GRACE_S)
        while True:
            rc = self._proc.poll()
            if rc is not None:
                output = self._read_log().strip()
                self._halt()
                raise NodeProcessError(f"daemon exited with code {rc} during start", stdout=output or None)
            if regex is not None and regex.search(self._read_log()):
                return
            if time.monotonic() >= deadline:
                if regex is None:
                    return
                output = self._read_log().strip()
                self._halt()
                raise NodeProcessError(f"daemon not ready after {timeout}s", stdout=output or None)
            time.sleep(_POLL_S)

    # ---------- NodeInstance ----------

    def init(self, config: Optional[Dict[str, Any]] = None) -> bool:
        opts = {**self._config, **(config or {})}
        Path(self.path).mkdir(parents=True, exist_ok=True)
        init_cmd = opts.get("init_cmd")
        if init_cmd:
            self._run(init_cmd, "init")
        self.initialized = True
        self.clean = False
        return self.initialized

    def start(self) -> None:
        cmd = self._config.get("cmd")
        if not cmd:
            raise NodeProcessError("no daemon command configured ('cmd')")
        if self._proc is not None and self._proc.poll() is None:
            raise NodeProcessError(f"daemon already running (pid {self._proc.pid})")

        self.api_addr = _render_addr(self._config.get("api_addr"))
        self.gateway_addr = _render_addr(self._config.get("gateway_addr"))
        self.grpc_addr = _render_addr(self._config.get("grpc_addr"))

        Path(self.path).mkdir(parents=True, exist_ok=True)
        self._log_fh = open(self.log_path, "wb")
        try:
            self._proc = subprocess.Popen(
                _argv(cmd),
                cwd=self.path,
                env=self._child_env(),
                stdin=subprocess.DEVNULL,
                stdout=self._log_fh,
                stderr=subprocess.STDOUT,
            )
        except OSError:
            self._close_log()
            raise
        self._wait_ready()
        self.started = True

    def stop(self) -> None:
        self._halt()
        if self.disposable:
            self.cleanup()

    def cleanup(self) -> None:
        self._halt()
        p = Path(self.path)
        if p.exists():
            shutil.rmtree(p)
        self.initialized = False
        self.clean = True

    def pid(self) -> int:
        if self._proc is None or self._proc.poll() is not None:
            raise NodeProcessError("daemon is not running")
        return self._proc.pid

    def version(self) -> str:
        version_cmd = self._config.get("version_cmd")
        if version_cmd:
            return self._run(version_cmd, "version")
        if self._config.get("version"):
            return str(self._config["version"])
        raise NodeProcessError("no version command configured ('version_cmd')")


class SubprocessNodeFactory:
    """Фабрика по умолчанию: конфиг spawn передаётся в SubprocessNode как есть."""

    def __init__(self, tmp_root: Path | str | None = None, defaults: Optional[Dict[str, Any]] = None) -> None:
        self._tmp_root = Path(tmp_root) if tmp_root else Path(tempfile.gettempdir())
        self._defaults = dict(defaults or {})

    def spawn(self, config: Optional[Dict[str, Any]] = None) -> SubprocessNode:
        opts = {**self._defaults, **(config or {})}
        node = SubprocessNode(opts, tmp_root=self._tmp_root)
        try:
            if opts.get("init") or opts.get("start"):
                node.init()
            if opts.get("start"):
                node.start()
        except Exception:
            node.cleanup()
            raise
        return node
