# src/nodectl/apps/cli/app.py
from __future__ import annotations

import os
import traceback
from typing import Optional

from dotenv import load_dotenv, find_dotenv
import typer

# загружаем .env один раз (NODECTL_BASE_DIR, NODECTL_TOKEN, ...)
load_dotenv(find_dotenv(usecwd=True))

from nodectl import __version__
from nodectl.services.settings import Settings
from nodectl.apps.cli.commands import api, remote

app = typer.Typer(help="nodectl: remote lifecycle control for daemon nodes")


def _run_safe(func):
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            if os.getenv("NODECTL_CLI_DEBUG") == "1":
                traceback.print_exc()
            raise

    return wrapper


# -------- корневой callback (composition root) --------


@_run_safe
@app.callback()
def main(
    ctx: typer.Context,
    base_dir: Optional[str] = typer.Option(None, "--base-dir", help="Базовый каталог nodectl (по умолчанию ~/.nodectl или из .env/ENV)"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Профиль настроек (по умолчанию 'default' или из .env/ENV)"),
):
    """
    Вызывается перед любыми подкомандами: читает настройки (.env/ENV) и применяет CLI-переопределения.
    """
    ctx.obj = Settings.from_sources().with_overrides(base_dir=base_dir, profile=profile)


@app.command("version")
def version():
    """Версия nodectl."""
    typer.echo(__version__)


app.add_typer(api.app, name="api")
app.add_typer(remote.app, name="remote")


if __name__ == "__main__":
    app()
