"""Storefront FastAPI application.

Serves the shopper cart surface and the merchant product surface, processing
commands synchronously. Every request runs inside the storefront domain
context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# PROTEAN_ENV selects the config overlay from domain.toml
# ("test", "production", ...).
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.domain import storefront
from storefront.utils.logging import add_context, clear_context

storefront.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Variant matrix and cart consistency engine",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the storefront domain context and bind the request to the log context."""
    clear_context()
    add_context(
        method=request.method,
        path=request.url.path,
        user_id=request.headers.get("x-user-id"),
        session_token=request.headers.get("x-session-token"),
    )
    with storefront.domain_context():
        return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from storefront.api import cart_router, product_router, register_error_handlers  # noqa: E402

register_error_handlers(app)
app.include_router(cart_router)
app.include_router(product_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": storefront.name})
