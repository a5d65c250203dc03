"""FastAPI application entry point.

Serve with ``uvicorn polytag.main:app`` (install the ``serve`` extra).
"""

import logging

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S")

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from polytag.db import create_tables
from polytag.schemas.tag import ErrorResponse
from polytag.services.types import InvalidTagError

logger = logging.getLogger(__name__)

app = FastAPI(title="polytag")


@app.on_event("startup")
def startup() -> None:
    create_tables()


@app.exception_handler(InvalidTagError)
async def _invalid_tag_handler(request: Request, exc: InvalidTagError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(error="invalid_tag", detail=str(exc)).model_dump(),
    )


@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="internal_error", detail=str(exc)).model_dump(),
    )


# Import and register routers after app is defined to avoid circular imports.
from polytag.api import tags  # noqa: E402

app.include_router(tags.router, prefix="/tags", tags=["tags"])
