"""Render named storefront errors as ``{"error": {"code", "message", "details"}}``.

Register after ``protean.integrations.fastapi.register_exception_handlers``;
FastAPI picks the most specific handler, so plain protean validation errors
keep their generic 400 rendering.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.errors import StorefrontError


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})
