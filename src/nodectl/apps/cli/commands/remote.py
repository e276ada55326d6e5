# src/nodectl/apps/cli/commands/remote.py
from __future__ import annotations

import json
import os
from typing import Any, Callable, Optional

import typer

from nodectl.adapters.remote import RemoteNodeClient
from nodectl.services.errors import NodeCtlError
from nodectl.services.settings import Settings

app = typer.Typer(help="Управление узлами на удалённом nodectl serve")


def _client(ctx: typer.Context) -> RemoteNodeClient:
    settings: Settings = ctx.obj or Settings.from_sources()
    url = ctx.meta.get("nodectl.url") or settings.url
    token = ctx.meta.get("nodectl.token") or settings.token
    return RemoteNodeClient(url, token=token)


def _echo(data: Any) -> None:
    if data is None:
        typer.echo(json.dumps({"ok": True}))
    else:
        typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


def _run(fn: Callable[[], Any]) -> None:
    try:
        _echo(fn())
    except NodeCtlError as e:
        typer.echo(f"{e.kind}: {e}", err=True)
        raise typer.Exit(code=1)


def _payload(raw: Optional[str]) -> dict:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"invalid JSON: {e}")
    if not isinstance(data, dict):
        raise typer.BadParameter("config must be a JSON object")
    return data


@app.callback()
def remote(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(None, "--url", help="Адрес control plane (по умолчанию NODECTL_URL или http://host:port из настроек)"),
    token: Optional[str] = typer.Option(None, "--token", help="X-Nodectl-Token"),
):
    ctx.meta["nodectl.url"] = url or os.getenv("NODECTL_URL")
    ctx.meta["nodectl.token"] = token


@app.command("spawn")
def spawn(ctx: typer.Context, config: Optional[str] = typer.Argument(None, help="JSON-конфиг для фабрики")):
    """Создать узел; печатает handle и метаданные."""
    _run(lambda: _client(ctx).spawn(_payload(config)).info)


@app.command("init")
def init(ctx: typer.Context, handle: str, config: Optional[str] = typer.Argument(None, help="JSON-конфиг init")):
    _run(lambda: {"initialized": _client(ctx).node(handle).init(_payload(config))})


@app.command("start")
def start(ctx: typer.Context, handle: str):
    _run(lambda: _client(ctx).node(handle).start())


@app.command("stop")
def stop(ctx: typer.Context, handle: str):
    _run(lambda: _client(ctx).node(handle).stop())


@app.command("cleanup")
def cleanup(ctx: typer.Context, handle: str):
    _run(lambda: _client(ctx).node(handle).cleanup())


@app.command("pid")
def pid(ctx: typer.Context, handle: str):
    _run(lambda: {"pid": _client(ctx).node(handle).pid()})


@app.command("version")
def version(ctx: typer.Context, handle: str):
    _run(lambda: {"version": _client(ctx).node(handle).version()})


@app.command("status")
def status(ctx: typer.Context, handle: str):
    _run(lambda: _client(ctx).node(handle).status())


@app.command("nodes")
def nodes(ctx: typer.Context):
    """Список живых узлов."""
    _run(lambda: _client(ctx).nodes())
