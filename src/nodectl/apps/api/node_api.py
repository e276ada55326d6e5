# src/nodectl/apps/api/node_api.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from nodectl.apps.api.auth import require_token
from nodectl.domain import NodeMetadata, NodeRecord
from nodectl.services.control_context import get_ctx
from nodectl.services.errors import DuplicateHandle, InvalidState, NodeCtlError, OperationFailed, UnknownHandle
from nodectl.services.tmpdir import tmp_dir

router = APIRouter(tags=["nodes"], dependencies=[Depends(require_token)])

_ERROR_STATUS = (
    (UnknownHandle, 404),
    (InvalidState, 409),
    (OperationFailed, 400),
    (DuplicateHandle, 500),
)


# ---------- Models ----------
# пустая строка вместо null: клиенты ждут всегда присутствующие адреса
class AddressesResponse(BaseModel):
    apiAddr: str = ""
    gatewayAddr: str = ""
    grpcAddr: str = ""


class NodeResponse(AddressesResponse):
    id: str
    initialized: bool
    started: bool
    disposable: bool
    clean: bool
    path: str = ""
    env: Dict[str, str] = {}


class NodeStatusResponse(NodeResponse):
    state: str


class NodesResponse(BaseModel):
    nodes: List[NodeStatusResponse]


class InitResponse(BaseModel):
    initialized: bool


class PidResponse(BaseModel):
    pid: int


class VersionResponse(BaseModel):
    version: str


class TmpDirResponse(BaseModel):
    tmpDir: str


def _addresses(meta: NodeMetadata) -> Dict[str, str]:
    return {
        "apiAddr": meta.api_addr or "",
        "gatewayAddr": meta.gateway_addr or "",
        "grpcAddr": meta.grpc_addr or "",
    }


def _node(record: NodeRecord) -> Dict[str, Any]:
    meta = record.metadata
    return {
        "id": record.handle,
        **_addresses(meta),
        "initialized": meta.initialized,
        "started": meta.started,
        "disposable": meta.disposable,
        "clean": meta.clean,
        "path": meta.path or "",
        "env": dict(meta.env),
    }


def _status(record: NodeRecord) -> NodeStatusResponse:
    return NodeStatusResponse(state=record.state.value, **_node(record))


async def nodectl_error_handler(request: Request, exc: NodeCtlError) -> JSONResponse:
    status_code = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    body: Dict[str, Any] = {"error": exc.kind, "message": str(exc)}
    if isinstance(exc, OperationFailed):
        body["output"] = exc.output
    elif isinstance(exc, InvalidState):
        body.update(state=exc.current.value, expected=sorted(s.value for s in exc.expected), operation=exc.operation)
    return JSONResponse(status_code=status_code, content=body)


# ---------- Endpoints ----------
# обычные def: FastAPI выполняет их в пуле потоков, блокирующие вызовы демона не держат event loop


@router.get("/util/tmp-dir", response_model=TmpDirResponse)
def util_tmp_dir(type_: str = Query("proc", alias="type")):
    try:
        return TmpDirResponse(tmpDir=str(tmp_dir(get_ctx().paths.tmp_dir(), type_)))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/spawn", response_model=NodeResponse)
def spawn(payload: Optional[Dict[str, Any]] = Body(default=None)):
    """Создать узел через фабрику; payload передаётся фабрике как есть."""
    record = get_ctx().lifecycle.spawn(payload or {})
    return NodeResponse(**_node(record))


@router.post("/init", response_model=InitResponse)
def init(handle: str = Query(..., alias="id", min_length=1), payload: Optional[Dict[str, Any]] = Body(default=None)):
    """Инициализировать репозиторий узла."""
    return InitResponse(initialized=get_ctx().lifecycle.init(handle, payload or {}))


@router.post("/start", response_model=AddressesResponse)
def start(handle: str = Query(..., alias="id", min_length=1)):
    """Запустить демон."""
    return AddressesResponse(**_addresses(get_ctx().lifecycle.start(handle)))


@router.post("/stop")
def stop(handle: str = Query(..., alias="id", min_length=1)):
    """Остановить демон (без очистки)."""
    get_ctx().lifecycle.stop(handle)
    return Response(status_code=200)


@router.post("/cleanup")
def cleanup(handle: str = Query(..., alias="id", min_length=1)):
    """
    Удалить репозиторий узла.
    Для disposable-узла это также происходит автоматически, поэтому повторный вызов не ошибка.
    """
    get_ctx().lifecycle.cleanup(handle)
    return Response(status_code=200)


@router.get("/pid", response_model=PidResponse)
def pid(handle: str = Query(..., alias="id", min_length=1)):
    return PidResponse(pid=get_ctx().lifecycle.pid(handle))


@router.get("/version", response_model=VersionResponse)
def version(handle: str = Query(..., alias="id", min_length=1)):
    return VersionResponse(version=get_ctx().lifecycle.version(handle))


@router.get("/status", response_model=NodeStatusResponse)
def status(handle: str = Query(..., alias="id", min_length=1)):
    return _status(get_ctx().lifecycle.status(handle))


@router.get("/nodes", response_model=NodesResponse)
def nodes():
    return NodesResponse(nodes=[_status(r) for r in get_ctx().lifecycle.list()])
