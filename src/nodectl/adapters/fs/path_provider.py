# src/nodectl/adapters/fs/path_provider.py
from __future__ import annotations
from pathlib import Path

from nodectl.services.settings import Settings

DEFAULT_PROFILE = "default"


class PathProvider:
    """Единая точка истины для путей. Всегда работает с pathlib.Path.

    Профиль, отличный от "default", получает своё дерево: {base_dir}/profiles/<profile>.
    """

    __slots__ = ("base",)

    def __init__(self, settings: Settings | str | Path):
        if isinstance(settings, Settings):
            base = Path(settings.base_dir)
            if settings.profile and settings.profile != DEFAULT_PROFILE:
                base = base / "profiles" / settings.profile
        else:
            base = Path(settings)
        self.base = base.expanduser().resolve()

    def base_dir(self) -> Path:
        return self.base

    def logs_dir(self) -> Path:
        return (self.base / "logs").resolve()

    def tmp_dir(self) -> Path:
        return (self.base / "tmp").resolve()

    def ensure_tree(self) -> None:
        for p in (self.base_dir(), self.logs_dir(), self.tmp_dir()):
            p.mkdir(parents=True, exist_ok=True)
