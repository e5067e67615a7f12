"""FastAPI exception handlers for the research service."""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from app.research_core.errors import InvalidRequest, ResearchError


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ResearchError)
    async def handle_research_error(request: Request, exc: ResearchError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = InvalidRequest("Invalid request body")
        return JSONResponse(
            status_code=error.status_code,
            content={**error.to_payload(), "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"message": "Unexpected server error"})
