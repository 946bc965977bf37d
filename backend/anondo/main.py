"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from anondo.config import settings
from anondo.database import init_db
from anondo.errors import register_exception_handlers

# Import routers
from anondo.routers import auth, events, comments, images, categories, users

# Import all models so Base.metadata knows about them
import anondo.models  # noqa: F401

logger = logging.getLogger("anondo")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    settings.check_secrets()
    # Create database tables on startup (for SQLite dev mode); Alembic owns the rest.
    if settings.dev_mode:
        init_db()
    logger.info("Anondo API started")
    yield
    logger.info("Anondo API shutting down")


app = FastAPI(
    title="Anondo",
    description="Social event management: create, join and discuss events, follow people",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(comments.router, prefix="/api/events", tags=["Comments"])
app.include_router(images.router, prefix="/api/events", tags=["Images"])
app.include_router(categories.router, prefix="/api/categories", tags=["Categories"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
