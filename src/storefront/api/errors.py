"""Exception handlers for storefront errors."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from storefront.errors import StorefrontError


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    """Protean's handlers for framework errors plus ours for storefront errors."""
    register_exception_handlers(app)
    app.add_exception_handler(StorefrontError, storefront_error_handler)
