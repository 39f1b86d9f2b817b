"""
Mind Map Backend - FastAPI Application

Thin HTTP/WebSocket surface over the mind map session:
- REST API for import/export and for every mutation in the interface table
- Question endpoint that turns responder answers into child nodes
- WebSocket endpoint broadcasting committed models and viewport focus
"""
import asyncio
import logging
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from mindmap_core import MutationResult, settings

from .responder import ResponderError, responder_from_settings
from .session import MindMapSession, UnknownOperationError
from .websocket_manager import ws_manager

logger = logging.getLogger(__name__)

session = MindMapSession()
responder = responder_from_settings()


def configure_logging(level: Optional[str] = None):
    """Configure root logging from settings."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def publish(result: Optional[MutationResult]) -> dict:
    """
    Broadcast a committed result: model first, then (after one yield) the focus.

    Raises 409 when the session refused the mutation.
    """
    if result is None:
        raise HTTPException(status_code=409, detail="Previous change has not settled yet")

    focus = None
    if result.changed:
        await ws_manager.notify_mindmap_updated(session.model.to_json_dict())
        await asyncio.sleep(0)
        focus = session.settle()
        if focus is not None:
            await ws_manager.notify_viewport_focus(focus.to_dict())

    return {
        "success": True,
        "changed": result.changed,
        "focus": focus.to_dict() if focus else None,
        "mindmap": session.model.to_json_dict(),
    }


# --- FastAPI App ---

app = FastAPI(
    title="Mind Map API",
    description="Backend API for the mind map editor",
    version="1.0.0",
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "connections": ws_manager.connection_count}


# --- Mind Map State ---

@app.get("/api/mindmap")
async def get_mindmap():
    """Get the current mind map state."""
    return session.get_state()


@app.post("/api/mindmap/reset")
async def reset_mindmap(label: Optional[str] = Query(default=None)):
    """Start over from a blank mind map."""
    session.reset(label)
    await ws_manager.notify_mindmap_updated(session.model.to_json_dict())
    focus = session.settle()
    if focus is not None:
        await ws_manager.notify_viewport_focus(focus.to_dict())
    return {"success": True, "mindmap": session.model.to_json_dict()}


# --- Import / Export ---

@app.post("/api/mindmap/import")
async def import_mindmap(
    data: Any = Body(...),
    relayout: bool = Query(default=False),
    lossy: Optional[bool] = Query(default=None),
):
    """Import canonical, linked-record or freeform JSON. The map is unchanged on failure."""
    outcome = session.import_json(data, relayout=relayout, lossy=lossy)
    if not outcome.ok:
        raise HTTPException(status_code=422, detail=outcome.error)

    await ws_manager.notify_mindmap_updated(session.model.to_json_dict())
    await asyncio.sleep(0)
    focus = session.settle()
    if focus is not None:
        await ws_manager.notify_viewport_focus(focus.to_dict())
    return {**outcome.to_dict(), "mindmap": session.model.to_json_dict()}


@app.get("/api/mindmap/export")
async def export_mindmap():
    """Canonical export of the current mind map."""
    return session.export_json()


# --- Mutations ---

@app.post("/api/mindmap/ops/{op_name}")
async def run_operation(op_name: str, params: dict = Body(default={})):
    """Run one operation from the interface table (add_child, delete_subtree, ...)."""
    try:
        result = session.dispatch(op_name, **params)
    except UnknownOperationError:
        raise HTTPException(status_code=404, detail=f"Unknown operation: {op_name}")
    except TypeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid parameters for {op_name}: {e}")
    return await publish(result)


class AskRequest(BaseModel):
    node_id: str
    question: str


@app.post("/api/mindmap/ask")
async def ask_question(request: AskRequest):
    """Ask the responder about a node; the answer becomes a new child node."""
    try:
        result = await session.ask(responder, request.node_id, request.question)
    except ResponderError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return await publish(result)


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for renderers.

    Clients receive mindmap_updated and viewport_focus events.
    """
    await ws_manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text('{"type": "pong"}')
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)


def run_server(host: str = "127.0.0.1", port: int = 8765):
    """Run the API server."""
    import uvicorn

    configure_logging()
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run_server()
