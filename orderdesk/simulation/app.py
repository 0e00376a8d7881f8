"""
Simulation Order Store API

FastAPI application exposing the order store endpoints the client expects,
backed by InMemoryOrderStore. Used in development mode, by the CLI's
``serve`` command and by the test-suite.

Endpoints:
    - GET   /health: Store health check
    - GET   /orders: Staff order list (bearer token)
    - PATCH /orders/{order_id}/status: Staff status change (bearer token)
    - GET   /public-order?orderId=: Diner order lookup
    - POST  /submit-order: Diner order submission

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orderdesk.core.config import Settings, get_settings
from orderdesk.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ServerRejectionError,
    ValidationError,
)
from orderdesk.schemas import (
    ErrorResponse,
    OrderListResponse,
    PublicOrderResponse,
    StatusUpdateRequest,
    validate_submission,
)
from orderdesk.simulation.store import InMemoryOrderStore

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(exclude_none=True),
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[InMemoryOrderStore] = None,
) -> FastAPI:
    """
    Build a simulation order store application.

    Args:
        settings: Settings to read tokens and business rules from
        store: Pre-populated store (a fresh one is created otherwise)
    """
    settings = settings or get_settings()
    store = store or InMemoryOrderStore(
        commission_rate=settings.commission_rate,
        free_cancellations_per_day=settings.free_cancellations_per_day,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info(f"🚀 Simulation order store for {settings.restaurant_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Commission: {settings.commission_rate:.0%}")
        logger.info("=" * 60)
        yield
        logger.info(f"Shutting down simulation store ({len(store)} orders in memory)")

    app = FastAPI(
        title=f"{settings.app_name} simulation store",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.state.store = store
    app.state.settings = settings

    # =========================================================================
    # AUTH
    # =========================================================================

    async def require_staff(authorization: Optional[str] = Header(None)) -> None:
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Unauthorized: Missing token")
        if authorization.split(" ", 1)[1] != settings.simulation_auth_token:
            raise HTTPException(status_code=401, detail="Invalid token")

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return _error(400, message)

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, exc.message)

    @app.exception_handler(InvalidTransitionError)
    async def transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        logger.warning(f"Refused transition: {exc}")
        return _error(409, str(exc))

    @app.exception_handler(ServerRejectionError)
    async def rejection_handler(request: Request, exc: ServerRejectionError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, Any]:
        return {
            "status": "operational",
            "orders": len(store),
            "timestamp": datetime.now().isoformat(),
        }

    @app.get(
        "/orders",
        response_model=OrderListResponse,
        dependencies=[Depends(require_staff)],
        tags=["Orders"],
    )
    async def list_orders() -> OrderListResponse:
        return OrderListResponse(orders=store.list())

    @app.patch(
        "/orders/{order_id}/status",
        dependencies=[Depends(require_staff)],
        tags=["Orders"],
    )
    async def update_order_status(order_id: str, body: StatusUpdateRequest) -> dict[str, Any]:
        if body.order_id != order_id:
            raise ValidationError("orderId does not match the URL")

        order, message = store.update_status(order_id, body.status, driver=body.driver)
        return {
            "success": True,
            "order": order.model_dump(mode="json"),
            "message": message,
        }

    @app.get("/public-order", response_model=PublicOrderResponse, tags=["Orders"])
    async def get_public_order(order_id: Optional[str] = Query(None, alias="orderId")) -> PublicOrderResponse:
        if not order_id:
            raise ValidationError("Missing orderId")
        order = store.get(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return PublicOrderResponse(order=order)

    @app.post("/submit-order", status_code=201, tags=["Orders"])
    async def submit_order(payload: dict[str, Any]) -> dict[str, Any]:
        submission = validate_submission(payload)
        if submission.restaurant_name != settings.restaurant_name:
            raise NotFoundError("Restaurant not found")

        order = store.create(submission)
        return {
            "success": True,
            "orderId": order.id,
            "order": order.model_dump(mode="json"),
            "message": "Order placed successfully",
        }

    return app
