"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
from fastapi.middleware.cors import CORSMiddleware

from taskboard import __version__
from taskboard.config import get_settings
from taskboard.db.database import init_db
from taskboard.errors import register_exception_handlers

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events.

    Args:
        app: FastAPI application instance.
    """
    # Startup
    init_db()
    yield
    # Shutdown (cleanup if needed)


app = FastAPI(
    title=settings.app_name,
    description="Multi-tenant kanban boards with organization invitations",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# Import and include routers
from taskboard.auth.router import router as auth_router
from taskboard.boards.router import router as boards_router
from taskboard.invitations.router import page_router as invite_page_router
from taskboard.invitations.router import router as invitations_router
from taskboard.organizations.router import router as organizations_router

# API routes
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(organizations_router, prefix="/api/organizations", tags=["organizations"])
app.include_router(boards_router, prefix="/api", tags=["boards"])
app.include_router(invitations_router, prefix="/api", tags=["invitations"])

# Capability links
app.include_router(invite_page_router, tags=["invitations"])


@app.get("/health")
async def health_check():
    """Health check endpoint for Docker/Kubernetes.

    Returns:
        dict: Health status.
    """
    return {"status": "healthy", "app": settings.app_name}
