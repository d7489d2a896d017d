"""
REST API for the LAN Chat Node

Design Decision: API Framework
==============================

Options Considered:
1. FastAPI - Modern, fast, auto-docs, async support
2. Flask - Simple, widely used, but sync-focused
3. Hand-written HTTP over raw sockets - no dependencies, every edge case is ours

Decision: FastAPI
- Native async support (message store is async)
- Automatic OpenAPI documentation
- Pydantic integration for request validation

API Design:
- GET  /messages  - chat history
- POST /messages  - post a message
- POST /clear     - clear history
- GET  /peers     - peers discovered on the LAN
- GET  /status    - node statistics
- GET  /api       - basic info

Every route is also served under /api (e.g. /api/messages) for older
clients. Anything else falls through to the bundled web client.
"""

import logging
from pathlib import Path
from typing import Optional, List
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

WEB_DIR = Path(__file__).resolve().parent.parent / "web"

# Global reference to the chat node (set when app is created)
_node = None


# === Pydantic Models ===

class PostMessageRequest(BaseModel):
    """Request to post a chat message."""
    user: str
    message: str


class MessageInfo(BaseModel):
    """A stored chat message."""
    id: str
    user: str
    message: str
    timestamp: str


class PeerInfo(BaseModel):
    """A peer currently announcing on the LAN."""
    id: str
    address: str
    last_seen_seconds_ago: float


class NodeStatus(BaseModel):
    """Node status response."""
    peer_id: str
    running: bool
    discovery_available: bool
    messages: int
    discovered_peers: int


# === API Creation ===

def create_app(node=None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        node: ChatNode instance to serve

    Returns:
        FastAPI application
    """
    global _node
    _node = node

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle startup and shutdown."""
        logger.info("API server starting...")
        yield
        logger.info("API server stopping...")

    app = FastAPI(
        title="LAN Chat API",
        description="REST API for a peer-discoverable LAN chat node",
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    def require_node():
        if not _node:
            raise HTTPException(status_code=503, detail="Node not initialized")
        return _node

    # === Endpoints ===

    @app.get("/api", tags=["General"])
    async def info():
        """API root - basic info."""
        return {
            "name": "LAN Chat",
            "version": API_VERSION,
            "status": "running" if _node and _node.is_running else "not running",
            "peer_id": _node.peer_id if _node else None,
        }

    router = APIRouter()

    @router.get("/status", response_model=NodeStatus, tags=["Node"])
    async def get_status():
        """Get node status."""
        node = require_node()

        stats = await node.get_stats()

        return NodeStatus(
            peer_id=stats['peer_id'],
            running=stats['running'],
            discovery_available=stats['discovery']['available'],
            messages=stats['messages'],
            discovered_peers=len(node.get_peers()),
        )

    @router.get("/stats", tags=["Node"])
    async def get_stats():
        """Get detailed node statistics."""
        node = require_node()
        return await node.get_stats()

    # === Messages ===

    @router.get("/messages", response_model=List[MessageInfo], tags=["Messages"])
    async def list_messages(limit: Optional[int] = Query(default=None, ge=1)):
        """List chat messages, oldest first."""
        node = require_node()

        messages = await node.list_messages(limit)
        return [MessageInfo(**m.to_dict()) for m in messages]

    @router.post("/messages", status_code=201, tags=["Messages"])
    async def post_message(request: PostMessageRequest):
        """Post a chat message."""
        node = require_node()

        user = request.user.strip()
        text = request.message.strip()
        if not user or not text:
            raise HTTPException(status_code=400, detail="Missing user or message field")

        try:
            message = await node.post_message(user, text)
        except Exception as e:
            logger.error(f"Error posting message: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

        return {"status": "success", "id": message.id, "timestamp": message.timestamp}

    @router.post("/clear", tags=["Messages"])
    async def clear_messages():
        """Clear the chat history."""
        node = require_node()
        await node.clear_messages()
        return {"status": "success"}

    # === Peer Operations ===

    @router.get("/peers", response_model=List[PeerInfo], tags=["Peers"])
    async def list_peers():
        """List peers discovered on the LAN."""
        node = require_node()

        peers = node.get_peers()
        now = node.discovery.table.now()
        return [PeerInfo(**p.to_dict(now)) for p in peers]

    app.include_router(router)
    app.include_router(router, prefix="/api", include_in_schema=False)

    # === Web Client ===

    @app.get("/", include_in_schema=False)
    @app.get("/index.html", include_in_schema=False)
    async def index():
        return FileResponse(WEB_DIR / "index.html")

    app.mount("/", StaticFiles(directory=WEB_DIR), name="web")

    return app


async def run_api_server(node, host: str = "0.0.0.0", port: int = 8080):
    """
    Run the API server.

    Args:
        node: ChatNode instance
        host: Host to bind to
        port: Port to listen on
    """
    import uvicorn

    app = create_app(node)

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()
