from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
import uuid
import logging

from .config import Settings
from .session import WatchSession
from .websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the app with its own connection manager and session."""
    app = FastAPI(title="Watch Party", version="1.0.0")
    manager = ConnectionManager()
    app.state.manager = manager
    app.state.session = WatchSession(manager)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/session")
    async def session_info(request: Request):
        """Get the shared session state"""
        info = request.app.state.session.get_debug_info()
        info["active_connections"] = request.app.state.manager.connection_ids()
        return info

    @app.get("/api/session/users")
    async def session_users(request: Request):
        """Get users in the session"""
        registry = request.app.state.session.registry
        return {"users": [p.to_wire() for p in registry.participants()], "count": registry.count()}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for the watch-together session"""
        manager: ConnectionManager = websocket.app.state.manager
        session: WatchSession = websocket.app.state.session
        socket_id = str(uuid.uuid4())
        await manager.connect(websocket, socket_id)

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                data = message.get("text")
                if data is None:
                    data = message.get("bytes")
                session.handle(socket_id, data)
        except WebSocketDisconnect:
            logger.info(f"🔌 WebSocket disconnected: {socket_id}")
        except Exception as e:
            logger.error(f"❌ WebSocket error for {socket_id}: {e}")
        finally:
            session.disconnect(socket_id)
            await manager.disconnect(socket_id)

    return app


def run():
    import uvicorn

    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"🚀 Watch party server running on port {settings.port}")
    uvicorn.run(
        "watchparty.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
