# src/nodectl/services/settings.py
from __future__ import annotations
from dataclasses import dataclass, replace
import os
from pathlib import Path
from typing import Optional, Dict
from nodectl.config import const


def _parse_env_file(path: str) -> Dict[str, str]:
    data: Dict[str, str] = {}
    p = Path(path)
    if not p.exists():
        return data
    for line in p.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            data[k.strip()] = v.strip().strip('"').strip("'")
    return data


@dataclass(frozen=True, slots=True)
class Settings:
    base_dir: Path
    profile: str = "default"
    host: str = const.DEFAULT_HOST
    port: int = const.DEFAULT_PORT
    token: Optional[str] = None
    log_level: str = "INFO"
    factory: str = const.DEFAULT_FACTORY

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @staticmethod
    def from_sources(env_file: Optional[str] = ".env") -> "Settings":
        env_file_vars = _parse_env_file(env_file) if env_file else {}

        def pick_env(key: str, default: Optional[str] = None) -> str:
            return os.environ.get(key) or env_file_vars.get(key) or (default or "")

        override_base = pick_env("NODECTL_BASE_DIR")
        base = Path(override_base).expanduser().resolve() if override_base else (Path.home() / ".nodectl").resolve()

        port_raw = pick_env("NODECTL_PORT", str(const.DEFAULT_PORT))
        try:
            port = int(port_raw)
        except ValueError:
            raise ValueError(f"NODECTL_PORT must be an integer, got {port_raw!r}")

        return Settings(
            base_dir=base,
            profile=pick_env("NODECTL_PROFILE", "default"),
            host=pick_env("NODECTL_HOST", const.DEFAULT_HOST),
            port=port,
            token=pick_env("NODECTL_TOKEN") or None,
            log_level=pick_env("NODECTL_LOG_LEVEL", "INFO"),
            factory=pick_env("NODECTL_FACTORY", const.DEFAULT_FACTORY),
        )

    def with_overrides(self, **kw) -> "Settings":
        # None означает "не переопределять"
        safe = {k: v for k, v in kw.items() if k in {"base_dir", "profile", "host", "port", "token", "log_level", "factory"} and v is not None}
        if "base_dir" in safe:
            safe["base_dir"] = Path(safe["base_dir"]).expanduser().resolve()
        return replace(self, **safe)
