from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import Config
from .core.events import BroadcastHub, WebSocketObserver
from .core.lifecycle import Connection, ConnectionLifecycleManager
from .core.registry import ConnectionRegistry
from .core.session import SessionStateMachine
from .integrations.directory import HTTPUserDirectory, StaticUserDirectory, UserDirectory
from .routes.presence import router as presence_router


logger = logging.getLogger(__name__)


def build_directory(config: Config) -> UserDirectory:
    if config.user_directory.url:
        return HTTPUserDirectory(
            config.user_directory.url,
            token=config.user_directory.token,
            timeout=config.user_directory.timeout,
        )
    return StaticUserDirectory.from_yaml(config.users_file)


def create_app(config: Optional[Config] = None, directory: Optional[UserDirectory] = None) -> FastAPI:
    config = config or Config.load()
    app = FastAPI(title="Exam Presence Server", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = ConnectionRegistry()
    hub = BroadcastHub(registry)
    session = SessionStateMachine(registry, hub)
    lifecycle = ConnectionLifecycleManager(session, hub, directory or build_directory(config))

    # Attach shared state
    app.state.config = config
    app.state.registry = registry
    app.state.events = hub
    app.state.session = session
    app.state.lifecycle = lifecycle

    app.include_router(presence_router, prefix="/api")

    @app.get("/api/health")
    async def health():
        return {
            "status": "ok",
            "port": config.port,
            "presence": {**registry.counts(), "observers": hub.observer_count},
        }

    @app.websocket("/api/events")
    async def events_ws(ws: WebSocket):
        await ws.accept()
        observer = WebSocketObserver(ws, label=ws.query_params.get("userId") or "anonymous")
        observer.start()
        conn = Connection(observer=observer)
        try:
            conn = await lifecycle.connect(observer, ws.query_params)
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None and message.get("bytes") is not None:
                    raw = message["bytes"].decode("utf-8", errors="replace")
                try:
                    frame = json.loads(raw or "")
                except ValueError:
                    logger.debug("Ignoring non-JSON frame from %s", observer.label)
                    continue
                lifecycle.receive(conn, frame)
        finally:
            lifecycle.disconnect(conn)
            await observer.stop()

    @app.on_event("shutdown")
    async def shutdown():
        registry.clear()
        hub.clear()
        await lifecycle.directory.close()

    return app


app = create_app()
