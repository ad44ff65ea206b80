import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from .config import get_settings
from .db import close_mongo_connection, connect_to_mongo, is_connected
from .integrations.cloudinary import (
    ensure_configured as cld_ensure,
    get_status as cld_status,
    is_enabled as cld_enabled,
)
from .realtime.bus import change_feed
from .routers import conversations, matching, photos, profile, session


async def _start_change_feed() -> None:
    try:
        if await change_feed.start():
            print("[Events] Redis change feed listener started")
        else:
            print("[Events] Redis pub/sub disabled; change feed is in-process")
    except Exception as e:
        print(f"[Events] listener start failed (non-fatal): {e}")


def _log_cloudinary_status() -> None:
    try:
        if cld_enabled():
            cld_ensure()
            info = cld_status() or {}
            print(
                f"[Cloudinary] configured={bool(info.get('configured'))} cloud={info.get('cloudName') or 'unknown'} via_url={'yes' if info.get('usingUrl') else 'no'}"
            )
        else:
            print("[Cloudinary] not configured; image uploads will fail")
    except Exception as e:
        print(f"[Cloudinary] status check error: {e}")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    await connect_to_mongo()
    await _start_change_feed()
    _log_cloudinary_status()
    try:
        yield
    finally:
        await change_feed.stop()
        await close_mongo_connection()


app = FastAPI(title="Cosmic Match API", default_response_class=ORJSONResponse, lifespan=lifespan)
settings = get_settings()

# CORS origins from env (supports CSV)
_origins_env = os.getenv("CORS_ORIGINS") or settings.cors_origin
_allow_origins = [o.strip() for o in _origins_env.split(",") if o.strip()]
print(f"[CORS] allow_origins={_allow_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
    allow_credentials=True,
)
app.add_middleware(GZipMiddleware, minimum_size=512)


# Simple slow-request logger
@app.middleware("http")
async def log_slow_requests(request, call_next):
    t0 = time.time()
    response = await call_next(request)
    dt = (time.time() - t0) * 1000
    slow_ms = int(os.getenv("SLOW_REQUEST_MS", "800"))
    if dt >= slow_ms:
        print(f"[perf] slow request {request.method} {request.url.path} {int(dt)}ms status={response.status_code}")
    return response


# Routers
app.include_router(matching.router, prefix="/api", tags=["matching"])
app.include_router(conversations.router, prefix="/api", tags=["conversations"])
app.include_router(profile.router, prefix="/api", tags=["profile"])
app.include_router(photos.router, prefix="/api", tags=["photos"])
app.include_router(session.router, prefix="/api", tags=["realtime"])


@app.get("/")
async def root():
    return {"status": "cosmic-match-ok"}


@app.get("/api/health/db")
async def db_health():
    return {
        "mongo": "connected" if is_connected() else "disconnected",
        "db": str(get_settings().mongo_db),
    }
