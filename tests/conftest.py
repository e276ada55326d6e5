# tests/conftest.py
from __future__ import annotations
import subprocess
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from nodectl.apps.bootstrap import init_ctx
from nodectl.services.control_context import clear_ctx
from nodectl.services.settings import Settings


# ---- минимальная фабрика узлов для тестов (без реальных процессов) ----
class FakeNode:
    """
    Конфиг spawn управляет поведением:
      fail: ["init", "start", ...]: эти операции падают с CalledProcessError (с выводом)
      delay: секунды, каждая операция «блокируется» на это время
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.fail = set(config.get("fail") or [])
        self.delay = float(config.get("delay") or 0)
        self.api_addr: Optional[str] = None
        self.gateway_addr: Optional[str] = None
        self.grpc_addr: Optional[str] = None
        self.initialized = bool(config.get("init"))
        self.started = False
        self.disposable = bool(config.get("disposable", True))
        self.clean = False
        self.path = config.get("repo", "/tmp/fake-node")
        self.env = dict(config.get("env") or {})
        self.calls: List[str] = []
        self._lock = threading.Lock()
        self._running = False

    def _op(self, name: str) -> None:
        with self._lock:
            self.calls.append(name)
        if self.delay:
            time.sleep(self.delay)
        if name in self.fail:
            raise subprocess.CalledProcessError(1, ["fake-daemon", name], output=f"{name} output: repo is locked")

    def init(self, config=None):
        self._op("init")
        self.initialized = True

    def start(self):
        self._op("start")
        self.api_addr = "/ip4/127.0.0.1/tcp/5001"
        self.gateway_addr = "/ip4/127.0.0.1/tcp/8080"
        self.started = True
        self._running = True

    def stop(self):
        self._op("stop")
        self.started = False
        self._running = False

    def cleanup(self):
        self._op("cleanup")
        self.clean = True

    def pid(self):
        self._op("pid")
        return 4242 if self._running else None

    def version(self):
        self._op("version")
        return "0.0.1-fake"


class FakeFactory:
    def __init__(self) -> None:
        self.nodes: List[FakeNode] = []

    def spawn(self, config=None):
        config = dict(config or {})
        if config.get("fail_spawn"):
            raise FileNotFoundError("daemon binary not found")
        node = FakeNode(config)
        if config.get("start"):
            node.initialized = True
            node.start()
        self.nodes.append(node)
        return node


@pytest.fixture
def factory() -> FakeFactory:
    return FakeFactory()


# ---------- автофикстура: поднимаем ControlContext для каждого теста ----------
@pytest.fixture(autouse=True)
def ctx(tmp_path, monkeypatch, factory):
    base_dir = tmp_path / "base"
    monkeypatch.setenv("NODECTL_BASE_DIR", str(base_dir))
    monkeypatch.delenv("NODECTL_TOKEN", raising=False)

    settings = Settings.from_sources(env_file=None).with_overrides(base_dir=base_dir, profile="test")
    context = init_ctx(settings, factory=factory)
    try:
        yield context
    finally:
        clear_ctx()


@pytest.fixture
def lifecycle(ctx):
    return ctx.lifecycle


@pytest.fixture
def api_client(ctx):
    from fastapi.testclient import TestClient
    from nodectl.apps.api.server import create_app

    with TestClient(create_app()) as client:
        yield client


@pytest.fixture
def base_dir(ctx) -> Path:
    return Path(ctx.paths.base_dir())
