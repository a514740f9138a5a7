"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import (
    auth,
    cart,
    content,
    debug,
    functions,
    health,
    microsites,
    orders,
    public,
    qr,
    users,
)
from api.services.autosave import get_autosave_registry
from api.services.database import close_db
from common.config import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown."""
    # Startup
    yield
    # Shutdown - write queued content edits, then close database connections
    await get_autosave_registry().flush_all()
    await close_db()


app = FastAPI(
    title="QR Microsites API",
    description="QR code microsite builder and sticker ordering",
    version=health.VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(microsites.router)
app.include_router(content.router)
app.include_router(qr.router)
app.include_router(public.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(functions.router)
app.include_router(debug.router)
