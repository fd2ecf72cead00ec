# Application entrypoint: configures middleware, startup routines, and API routers.
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from .db import Base, engine
from .routes.auth import router as auth_router
from .routes.properties import router as properties_router
from .routes.reviews import router as reviews_router
from .routes.profiles import router as profiles_router
from .routes.assistant import router as assistant_router, ws_router as assistant_ws_router

logger = logging.getLogger("rentwise")


# Parse CORS origins from a comma-separated env var.
# '*' cannot be combined with allow_credentials=True, so it maps to the local dev origins.
def _parse_cors_origins(env_value: str | None) -> list[str]:
    default_dev_origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    if not env_value:
        return default_dev_origins

    origins = [o.strip() for o in env_value.split(",") if o.strip()]
    if "*" in origins:
        return default_dev_origins

    return origins


app = FastAPI(title="Rentwise API", version="0.1.0")
allow_list = _parse_cors_origins(os.getenv("CORS_ORIGINS"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    # For local SQLite, auto-create tables; hosted databases rely on Alembic migrations.
    if os.getenv("DATABASE_URL", "sqlite:///./data.db").startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    logger.info("startup", extra={"cors_origins": allow_list})


# Liveness endpoint for container orchestrators and uptime checks
@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


# Mount application routers (identity, listings, reviews, profile, assistant)
app.include_router(auth_router, prefix="", tags=["auth"])
app.include_router(properties_router, prefix="/api/v1", tags=["properties"])
app.include_router(reviews_router, prefix="/api/v1", tags=["reviews"])
app.include_router(profiles_router, prefix="/api/v1", tags=["profile"])
app.include_router(assistant_router, prefix="/api/v1", tags=["assistant"])
app.include_router(assistant_ws_router, prefix="/ws", tags=["assistant"])
