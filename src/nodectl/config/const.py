# src/nodectl/config/const.py
from __future__ import annotations

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 43134

# фабрика по умолчанию (module:attr)
DEFAULT_FACTORY: str = "nodectl.adapters.daemon:SubprocessNodeFactory"

TOKEN_HEADER: str = "X-Nodectl-Token"
