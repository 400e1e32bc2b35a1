"""
FastAPI application for the food ordering service.

The API provides endpoints for:
- Order status changes, cancellations and refund requests
- Refund decisions and the admin dashboard reads
- Health checks

Mutations are dispatched as Temporal workflows; reads use the stores
directly. Every error answer has the shape ``{"message": ...}``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_pagination import add_pagination
from fastapi_pagination.utils import disable_installed_extensions_check
from starlette.exceptions import HTTPException as StarletteHTTPException
from temporalio.client import WorkflowFailureError

from food_orders import config
from food_orders.api.dependencies import shutdown
from food_orders.api.routers import admin, orders, system
from food_orders.errors import OrderWorkflowError, StoreUnavailableError

# Disable pagination extensions check for cleaner startup
disable_installed_extensions_check()

logger = logging.getLogger(__name__)

config.setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await shutdown()


app = FastAPI(
    title="Food Orders API",
    description="Order lifecycle and refund workflow service",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system.router, tags=["System"])
app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])

# Must run after the routers are included so their pages get the params
_ = add_pagination(app)


@app.exception_handler(OrderWorkflowError)
async def order_workflow_error_handler(
    request: Request, exc: OrderWorkflowError
) -> JSONResponse:
    logger.info(
        "Request rejected",
        extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
        },
    )
    return JSONResponse(
        status_code=exc.http_status, content={"message": exc.message}
    )


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(
    request: Request, exc: StoreUnavailableError
) -> JSONResponse:
    logger.error(
        "Backing store unavailable",
        extra={"path": request.url.path, "error_message": str(exc)},
    )
    return JSONResponse(
        status_code=exc.http_status,
        content={"message": "Service temporarily unavailable"},
    )


@app.exception_handler(WorkflowFailureError)
async def workflow_failure_handler(
    request: Request, exc: WorkflowFailureError
) -> JSONResponse:
    logger.error(
        "Order workflow failed unexpectedly",
        exc_info=exc,
        extra={"path": request.url.path},
    )
    return JSONResponse(status_code=500, content={"message": "Server error"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "message": "Invalid request",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    logger.error(
        "Unhandled error",
        exc_info=exc,
        extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": str(exc),
        },
    )
    return JSONResponse(status_code=500, content={"message": "Server error"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "food_orders.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
