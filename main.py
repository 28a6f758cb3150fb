"""
Supermarket Storefront - Application Entry Point
==================================================
FastAPI app initialization, middleware, and router registration.
"""

import logging
import time as _time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import settings
from config.database import Base, engine
from common.exceptions import StorefrontError
from common.security import get_cookie_kwargs, new_csrf_token

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
http_logger = logging.getLogger("supermarket.http")

# ==========================================
# Import ALL models so Base can see them
# ==========================================
from modules.user.models import User  # noqa: F401
from modules.catalog.models import Product, ProductCategory  # noqa: F401
from modules.cart.models import CartItem  # noqa: F401
from modules.order.models import Order, OrderItem  # noqa: F401

# ==========================================
# Import routers
# ==========================================
from modules.catalog.routes import router as catalog_router
from modules.catalog.admin_routes import router as catalog_admin_router
from modules.cart.routes import router as cart_router
from modules.order.routes import router as order_router
from modules.order.admin_routes import router as order_admin_router
from modules.user.admin_routes import router as user_admin_router


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    yield


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="Supermarket Storefront",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)


# ==========================================
# Business errors that no route handled
# ==========================================
@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse({"detail": exc.message}, status_code=400)


# ==========================================
# Middleware: Request Log
# ==========================================
_SKIP_PATHS = ("/health", "/favicon.ico")


@app.middleware("http")
async def request_logger(request: Request, call_next):
    """Log method, path, status and elapsed time of every request."""
    path = request.url.path
    if path.startswith(_SKIP_PATHS):
        return await call_next(request)

    start = _time.time()
    response = await call_next(request)
    elapsed_ms = int((_time.time() - start) * 1000)
    http_logger.info(f"{request.method} {path} -> {response.status_code} ({elapsed_ms} ms)")
    return response


# ==========================================
# Middleware: CSRF Cookie
# ==========================================
@app.middleware("http")
async def csrf_cookie_refresh(request: Request, call_next):
    """Hand out a csrf_token cookie on GET responses to clients that don't have one yet."""
    response = await call_next(request)
    if request.method == "GET" and not request.cookies.get("csrf_token"):
        response.set_cookie("csrf_token", new_csrf_token(), **get_cookie_kwargs(httponly=False))
    return response


# ==========================================
# Register Routers
# ==========================================
app.include_router(catalog_router)
app.include_router(catalog_admin_router)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(order_admin_router)
app.include_router(user_admin_router)


# ==========================================
# Health check
# ==========================================
@app.get("/health")
async def health():
    return {"status": "ok", "version": "1.0.0"}
