# main.py
from dotenv import load_dotenv
load_dotenv()

import os
import logging
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

# Router utama v1 (sudah dilindungi X-Api-Key via dependencies di routers.py)
from app.presentation.routers import router as v1_router
from app.presentation.health import router as health_router
from app.container import load_catalog
from app.domain.errors import CatalogLoadError

app = FastAPI(
    title="PUPHAX Catalog",
    version=os.getenv("APP_VERSION", "0.1.0"),
)

# --- logging config HARUS di atas ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app_logger = logging.getLogger("puphax.request")

@app.middleware("http")
async def log_requests(request: Request, call_next):
    app_logger.info(f"Incoming {request.method} {request.url.path}")
    try:
        response = await call_next(request)
        app_logger.info(f"Completed {request.method} {request.url.path} -> {response.status_code}")
        return response
    except Exception:
        app_logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        raise

# ─────────────────────────────────────────────────────────────
# CORS (atur via env: CORS_ALLOW_ORIGINS="https://foo.com,https://bar.com")
# ─────────────────────────────────────────────────────────────
raw_origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
allow_origins = [o.strip().rstrip("/") for o in raw_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials="*" not in allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ─────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────
app.include_router(v1_router, tags=["api"])
app.include_router(health_router, tags=["health"])

@app.get("/")
async def root():
    return {
        "name": "PUPHAX Catalog",
        "version": os.getenv("APP_VERSION", "0.1.0"),
        "ok": True,
    }

# ─────────────────────────────────────────────────────────────
# Startup: load the CSV catalog once, so the first query is not the slow one
# ─────────────────────────────────────────────────────────────
@app.on_event("startup")
def warmup():
    if os.getenv("CATALOG_LOAD_ON_STARTUP", "1") != "1":
        app_logger.info("catalog load on startup disabled")
        return
    try:
        load_catalog()
    except CatalogLoadError as e:
        # service stays up; /readyz reports not ready and queries return 503
        app_logger.error("catalog unavailable at startup: %s", e)


@app.options("/{rest_of_path:path}")
async def any_options(rest_of_path: str):
    return Response(status_code=204)
