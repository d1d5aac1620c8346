from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from typing import Callable, Dict, Any, List
import json
import logging
import uuid
from datetime import datetime, timezone

from commutesafe.database import AsyncSessionLocal, create_db_and_tables, dispose_engine
from commutesafe.api import auth, commute, emergency, friends, location
from commutesafe.api.auth import decode_access_token
from commutesafe.config import settings
from commutesafe.core.polling import DatabaseLocationSource, LocationPoller
from commutesafe.models.location import VisibleLocation

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Lifespan manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await create_db_and_tables()
    logger.info("Application starting up")
    yield
    # Shutdown
    manager.disconnect_all()
    await dispose_engine()
    logger.info("Application shutting down")

app = FastAPI(
    title="CommuteSafe Campus API",
    description="Commute routes, friend location sharing and SOS alerts for the OLFU Quezon City campus",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(friends.router, prefix="/api/friends", tags=["Friends"])
app.include_router(location.router, prefix="/api/location", tags=["Location"])
app.include_router(emergency.router, prefix="/api/emergency", tags=["Emergency"])
app.include_router(commute.router, prefix="/api/commute", tags=["Commute"])

@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "The data store is unavailable, please try again"}
    )

# WebSocket connection manager: pushes each poll tick to the viewer
class ConnectionManager:
    def __init__(self, poller: LocationPoller):
        self.poller = poller
        self.active_connections: Dict[str, WebSocket] = {}
        self.subscriptions: Dict[str, Callable[[], None]] = {}

    async def connect(self, websocket: WebSocket, viewer_id: str) -> str:
        await websocket.accept()
        connection_id = f"{viewer_id}:{uuid.uuid4().hex[:8]}"
        self.active_connections[connection_id] = websocket

        async def push(locations: List[VisibleLocation]):
            await self.send_locations(connection_id, locations)

        self.subscriptions[connection_id] = self.poller.subscribe(
            viewer_id, push, settings.LOCATION_POLL_INTERVAL_MS
        )
        logger.info(f"WebSocket connected: {connection_id}")
        return connection_id

    def disconnect(self, connection_id: str):
        unsubscribe = self.subscriptions.pop(connection_id, None)
        if unsubscribe:
            unsubscribe()
        if connection_id in self.active_connections:
            del self.active_connections[connection_id]
            logger.info(f"WebSocket disconnected: {connection_id}")

    def disconnect_all(self):
        for connection_id in list(self.active_connections):
            self.disconnect(connection_id)

    async def send_locations(self, connection_id: str, locations: List[VisibleLocation]):
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_text(json.dumps({
                "type": "friend_locations",
                "locations": [item.model_dump(mode="json") for item in locations],
                "timestamp": datetime.now(timezone.utc).isoformat()
            }))
        except Exception as e:
            logger.error(f"Error sending to {connection_id}: {e}")
            self.disconnect(connection_id)

manager = ConnectionManager(LocationPoller(DatabaseLocationSource(AsyncSessionLocal)))

@app.websocket("/ws/locations")
async def locations_websocket(websocket: WebSocket, token: str):
    viewer_id = decode_access_token(token)
    if viewer_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    connection_id = await manager.connect(websocket, viewer_id)
    try:
        while True:
            # Keep connection alive and answer heartbeats
            await websocket.receive_text()
            await websocket.send_text(json.dumps({
                "type": "heartbeat",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }))
    except WebSocketDisconnect:
        manager.disconnect(connection_id)
    except Exception as e:
        logger.error(f"WebSocket error for {connection_id}: {e}")
        manager.disconnect(connection_id)

@app.get("/")
async def root():
    return {
        "message": "CommuteSafe Campus API",
        "status": "active",
        "campus": "Our Lady of Fatima University - Quezon City",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

# Health check endpoint
@app.get("/health")
async def health_check() -> dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_connections": len(manager.active_connections)
    }
