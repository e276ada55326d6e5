# src/nodectl/adapters/remote/client.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from nodectl.config import const
from nodectl.domain import NodeState
from nodectl.services.errors import DuplicateHandle, InvalidState, NodeCtlError, OperationFailed, UnknownHandle


class RemoteNodeClient:
    """
    HTTP-клиент к `nodectl serve`.
    Ошибки сервера возвращаются той же таксономией (UnknownHandle / InvalidState / OperationFailed).
    """

    def __init__(self, base_url: str, *, token: Optional[str] = None, session: Any = None, timeout: Optional[float] = 60.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._headers = {const.TOKEN_HEADER: token} if token else {}

    # ---------- transport ----------

    def _request(
        self,
        method: str,
        path: str,
        *,
        handle: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        query = dict(params or {})
        if handle is not None:
            query["id"] = handle
        kwargs: Dict[str, Any] = {"headers": self._headers, "timeout": self._timeout}
        if query:
            kwargs["params"] = query
        if payload is not None:
            kwargs["json"] = payload
        url = f"{self.base_url}{path}"
        try:
            r = self._session.request(method, url, **kwargs)
        except requests.RequestException as e:
            # сервер недоступен / таймаут: та же таксономия, что и для ответов с ошибкой
            raise OperationFailed(f"{method} {url} failed: {e}", operation=path.lstrip("/")) from e
        if r.status_code >= 400:
            raise _error_from_response(r, handle)
        if not r.content:
            return None
        return r.json()

    # ---------- API ----------

    def spawn(self, config: Optional[Dict[str, Any]] = None) -> "RemoteNode":
        info = self._request("POST", "/spawn", payload=config or {})
        return RemoteNode(self, info["id"], info)

    def node(self, handle: str) -> "RemoteNode":
        return RemoteNode(self, handle)

    def nodes(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/nodes")["nodes"]

    def tmp_dir(self, type_: str = "proc") -> str:
        return self._request("GET", "/util/tmp-dir", params={"type": type_})["tmpDir"]


def _error_from_response(r: Any, handle: Optional[str]) -> NodeCtlError:
    try:
        body = r.json() or {}
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    kind = body.get("error")
    message = body.get("message") or body.get("detail") or r.text or f"HTTP {r.status_code}"
    if kind == UnknownHandle.kind:
        return UnknownHandle(handle or "")
    if kind == DuplicateHandle.kind:
        return DuplicateHandle(handle or "")
    if kind == InvalidState.kind:
        return InvalidState(
            handle or "",
            NodeState(body["state"]),
            [NodeState(s) for s in body.get("expected") or []],
            operation=body.get("operation"),
        )
    # 401/422 и прочее тоже отдаём как OperationFailed: вызывающему нужен один тип
    return OperationFailed(str(message), output=body.get("output"))


class RemoteNode:
    """Узел на удалённом control plane, привязанный к своему handle."""

    def __init__(self, client: RemoteNodeClient, handle: str, info: Optional[Dict[str, Any]] = None) -> None:
        self.client = client
        self.id = handle
        self.info: Dict[str, Any] = dict(info or {})

    @property
    def api_addr(self) -> str:
        return self.info.get("apiAddr", "")

    def init(self, config: Optional[Dict[str, Any]] = None) -> bool:
        data = self.client._request("POST", "/init", handle=self.id, payload=config or {})
        self.info["initialized"] = data["initialized"]
        return data["initialized"]

    def start(self) -> Dict[str, str]:
        data = self.client._request("POST", "/start", handle=self.id)
        self.info.update(data)
        return data

    def stop(self) -> None:
        self.client._request("POST", "/stop", handle=self.id)

    def cleanup(self) -> None:
        self.client._request("POST", "/cleanup", handle=self.id)

    def pid(self) -> int:
        return self.client._request("GET", "/pid", handle=self.id)["pid"]

    def version(self) -> str:
        return self.client._request("GET", "/version", handle=self.id)["version"]

    def status(self) -> Dict[str, Any]:
        data = self.client._request("GET", "/status", handle=self.id)
        self.info.update(data)
        return data
