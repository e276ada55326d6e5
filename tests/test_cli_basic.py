# tests/test_cli_basic.py
import json

import requests
from typer.testing import CliRunner

from nodectl import __version__
from nodectl.adapters.remote import RemoteNodeClient
from nodectl.apps.cli.app import app
from nodectl.apps.cli.commands import remote as remote_cmd


def test_cli_help():
    r = CliRunner().invoke(app, ["--help"])
    assert r.exit_code == 0
    assert "Usage" in r.stdout


def test_cli_version():
    r = CliRunner().invoke(app, ["version"])
    assert r.exit_code == 0
    assert r.stdout.strip() == __version__


def test_cli_remote_commands(api_client, monkeypatch):
    monkeypatch.setattr(remote_cmd, "RemoteNodeClient", lambda url, token=None: RemoteNodeClient(url, token=token, session=api_client))
    runner = CliRunner()

    r = runner.invoke(app, ["remote", "--url", "http://testserver", "spawn", "{}"])
    assert r.exit_code == 0, r.output
    handle = json.loads(r.stdout)["id"]

    r = runner.invoke(app, ["remote", "--url", "http://testserver", "start", handle])
    assert r.exit_code == 1
    assert "invalid_state" in r.output

    assert runner.invoke(app, ["remote", "--url", "http://testserver", "init", handle]).exit_code == 0
    r = runner.invoke(app, ["remote", "--url", "http://testserver", "start", handle])
    assert json.loads(r.stdout)["apiAddr"]

    r = runner.invoke(app, ["remote", "--url", "http://testserver", "nodes"])
    assert [n["id"] for n in json.loads(r.stdout)] == [handle]

    r = runner.invoke(app, ["remote", "--url", "http://testserver", "cleanup", handle])
    assert json.loads(r.stdout) == {"ok": True}


def test_cli_remote_rejects_bad_json(api_client, monkeypatch):
    monkeypatch.setattr(remote_cmd, "RemoteNodeClient", lambda url, token=None: RemoteNodeClient(url, token=token, session=api_client))
    r = CliRunner().invoke(app, ["remote", "--url", "http://testserver", "spawn", "[1, 2]"])
    assert r.exit_code != 0


def test_cli_remote_unreachable_server(monkeypatch):
    class _DownSession:
        def request(self, method, url, **kwargs):
            raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(remote_cmd, "RemoteNodeClient", lambda url, token=None: RemoteNodeClient(url, token=token, session=_DownSession()))
    r = CliRunner().invoke(app, ["remote", "--url", "http://127.0.0.1:1", "nodes"])
    assert r.exit_code == 1
    assert "operation_failed" in r.output
