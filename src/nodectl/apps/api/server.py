# src/nodectl/apps/api/server.py
from contextlib import asynccontextmanager
import time

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from nodectl import __version__
from nodectl.apps.bootstrap import bootstrap_app
from nodectl.services.errors import NodeCtlError


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 1) контекст (если CLI/тесты уже собрали его, переиспользуем)
    ctx = bootstrap_app()

    try:
        yield
    finally:
        # 2) останавливаем запущенные и чистим disposable-узлы
        await run_in_threadpool(ctx.lifecycle.teardown)


def create_app() -> FastAPI:
    from nodectl.apps.api import node_api

    app = FastAPI(title="nodectl", version=__version__, lifespan=lifespan)
    app.add_exception_handler(NodeCtlError, node_api.nodectl_error_handler)
    app.include_router(node_api.router)

    @app.get("/api/ping")
    async def ping():
        return {"ok": True, "ts": time.time()}

    # --- health endpoints (без авторизации; удобно для оркестраторов/проб) ---
    @app.get("/health/live")
    async def health_live():
        return {"ok": True}

    return app


app = create_app()
