# crane_signals/ws_server.py
from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import Any, Dict, Optional, Set

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from crane_signals.assessment import MODALITIES, AssessmentSession
from crane_signals.command_protocol import make_state
from crane_signals.signal_rules import SIGNAL_NAMES
from crane_signals.telemetry_store import TELEMETRY

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        self.active: Set[WebSocket] = set()
        self.lock = asyncio.Lock()
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    def set_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop

    async def connect(self, ws: WebSocket):
        await ws.accept()
        async with self.lock:
            self.active.add(ws)

    async def disconnect(self, ws: WebSocket):
        async with self.lock:
            self.active.discard(ws)

    async def broadcast(self, msg: Dict[str, Any]):
        dead = []
        data = json.dumps(msg)
        async with self.lock:
            for ws in list(self.active):
                try:
                    await ws.send_text(data)
                except Exception:
                    dead.append(ws)
            for d in dead:
                self.active.discard(d)
        if dead:
            logger.debug("Dropped %d dead websocket(s)", len(dead))

    def broadcast_sync(self, msg: Dict[str, Any]) -> None:
        """
        Thread-safe broadcast from the camera loop.
        No-op until the server loop is running.
        """
        if self.loop is None or self.loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.broadcast(msg), self.loop)


class SessionBinding:
    """The live session the control endpoints act on (None in serve-only mode)."""

    def __init__(self):
        self._session: Optional[AssessmentSession] = None
        self._lock = threading.Lock()

    def bind(self, session: Optional[AssessmentSession]) -> None:
        with self._lock:
            self._session = session

    def get(self) -> AssessmentSession:
        with self._lock:
            session = self._session
        if session is None:
            raise HTTPException(status_code=409, detail="No live session running")
        return session


manager = ConnectionManager()
SESSION = SessionBinding()

app = FastAPI(title="Crane Signals")


@app.on_event("startup")
async def _on_startup():
    manager.set_loop(asyncio.get_running_loop())


@app.websocket("/ws")
async def ws_endpoint(ws: WebSocket):
    await manager.connect(ws)
    try:
        while True:
            # keep-alive / optional client pings
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(ws)


# -------------------------
# Telemetry API (UI info)
# -------------------------
class TelemetryPayload(BaseModel):
    state: str
    signal: str
    progress: float = 0.0
    seconds_left: float = 0.0
    target: Optional[str] = None
    modality: str = "signals"


@app.get("/api/telemetry")
async def get_telemetry():
    return JSONResponse(TELEMETRY.snapshot())


@app.post("/api/telemetry")
async def post_telemetry(payload: TelemetryPayload):
    TELEMETRY.update(
        state=payload.state,
        signal=payload.signal,
        progress=float(payload.progress),
        seconds_left=float(payload.seconds_left),
        target=payload.target,
        modality=payload.modality,
    )

    await manager.broadcast({"type": "telemetry", "data": TELEMETRY.snapshot()})
    return {"ok": True}


@app.get("/api/debug")
async def get_debug():
    return JSONResponse({"stats": TELEMETRY.debug_stats()})


@app.get("/api/signals")
async def get_signals():
    return {"signals": list(SIGNAL_NAMES)}


# -------------------------
# Drill control
# -------------------------
class DrillRequest(BaseModel):
    target: Optional[str] = None


class ModalityRequest(BaseModel):
    modality: str


@app.post("/api/drill/start")
async def post_drill_start(req: DrillRequest):
    session = SESSION.get()
    if req.target is not None and req.target not in SIGNAL_NAMES:
        raise HTTPException(status_code=422, detail=f"Unknown signal: {req.target}")

    target = session.start_drill(req.target)
    await manager.broadcast(make_state("IDLE", "NONE", 0.0, {"target": target}))
    return {"ok": True, "target": target}


@app.post("/api/modality")
async def post_modality(req: ModalityRequest):
    if req.modality not in MODALITIES:
        raise HTTPException(status_code=422, detail=f"Unknown modality: {req.modality}")

    session = SESSION.get()
    session.set_modality(req.modality)
    await manager.broadcast(
        make_state("PAUSED" if session.paused else "IDLE", "NONE", 0.0, {"modality": req.modality})
    )
    return {"ok": True, "modality": session.modality}


def run_server(host: str = "127.0.0.1", port: int = 8010) -> None:
    uvicorn.run(app, host=host, port=port, log_level="info")


def start_server_background(
    host: str = "127.0.0.1", port: int = 8010
) -> threading.Thread:
    t = threading.Thread(target=run_server, args=(host, port), daemon=True)
    t.start()
    return t
