# src/nodectl/apps/cli/commands/api.py
import os
from typing import Optional

import typer
import uvicorn

from nodectl.services.settings import Settings

app = typer.Typer(help="HTTP API control plane")


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Адрес (по умолчанию NODECTL_HOST или 127.0.0.1)"),
    port: Optional[int] = typer.Option(None, "--port", help="Порт (по умолчанию NODECTL_PORT или 43134)"),
    reload: bool = typer.Option(False, "--reload", help="Для разработки"),
    token: Optional[str] = typer.Option(None, "--token", help="X-Nodectl-Token; иначе возьмем из NODECTL_TOKEN"),
    factory: Optional[str] = typer.Option(None, "--factory", help="Фабрика узлов в виде module:attr"),
):
    """Запустить HTTP API (FastAPI)."""
    base: Settings = ctx.obj or Settings.from_sources()
    settings = base.with_overrides(host=host, port=port, token=token, factory=factory)
    # воркер uvicorn собирает контекст сам, передаём настройки через окружение
    os.environ["NODECTL_BASE_DIR"] = str(settings.base_dir)
    os.environ["NODECTL_PROFILE"] = settings.profile
    os.environ["NODECTL_FACTORY"] = settings.factory
    if settings.token:
        os.environ["NODECTL_TOKEN"] = settings.token
    uvicorn.run("nodectl.apps.api.server:app", host=settings.host, port=settings.port, reload=reload)


if __name__ == "__main__":
    app()
