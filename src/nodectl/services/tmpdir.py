from __future__ import annotations
import re
import uuid
from pathlib import Path

_TYPE_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def tmp_dir(root: Path | str, type_: str = "proc") -> Path:
    """Уникальный (ещё не созданный) путь под временный репозиторий узла: <root>/<type>_node_<id>."""
    if not _TYPE_RE.match(type_ or ""):
        raise ValueError(f"invalid node type: {type_!r}")
    return Path(root) / f"{type_}_node_{uuid.uuid4().hex[:12]}"
