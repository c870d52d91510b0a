# app/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.db import init_db, close_db
from app.core.sse import ConnectionRegistry

from app.api.v1.routers import auth, events, messages, admin

from app.core.bootstrap import ensure_default_admin
logger = logging.getLogger("uvicorn.error")

def create_connection_registry() -> ConnectionRegistry:
    return ConnectionRegistry(write_timeout=settings.sse_write_timeout)

app = FastAPI(title=settings.APP_NAME)

# One registry per process; handlers reach it through deps.get_connection_registry
app.state.connections = create_connection_registry()

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def on_startup():
    await init_db()
    # Ensure there's a default admin account on first run
    await ensure_default_admin()
    logger.info("[sse] registry ready (write_timeout=%ss, ping=%ss)",
                settings.sse_write_timeout, settings.sse_ping_interval)

@app.on_event("shutdown")
async def on_shutdown():
    # Close open streams so their responses finish before the server exits
    registry = app.state.connections
    for user_id in registry.list_recipients():
        conn = registry.get(user_id)
        if conn is not None:
            conn.sink.close()
        registry.unregister(user_id)
    await close_db()

app.include_router(auth.router, prefix="/api/v1")
app.include_router(events.router, prefix="/api/v1")
app.include_router(messages.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")

@app.get("/healthz")
def healthz():
    return {"ok": True, "connections": app.state.connections.count()}
