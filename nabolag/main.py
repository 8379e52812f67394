# nabolag/main.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nabolag import __version__
from nabolag.config import get_settings
from nabolag.logging_config import configure_logging
from nabolag.routers import admin_lifecycle_router, posts_router

settings = get_settings()
configure_logging(json_format=settings.LOG_FORMAT == "json", level=settings.LOG_LEVEL)

app = FastAPI(title="Nabolag API", version=__version__)

if settings.cors_origin_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["authorization", "content-type", "x-api-key", "x-user-id"],
    )

app.include_router(posts_router)
app.include_router(admin_lifecycle_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": "nabolag-api", "version": __version__}


@app.get("/")
def root() -> dict:
    return {
        "service": "Nabolag API",
        "version": __version__,
        "endpoints": {
            "posts": "/v1/posts",
            "prune": "/v1/admin/lifecycle/prune",
            "drain": "/v1/admin/lifecycle/drain",
            "status": "/v1/admin/lifecycle/status",
        },
    }
