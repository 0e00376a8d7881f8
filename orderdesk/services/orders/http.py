"""
HTTP Order API Implementation

Talks JSON to the order store endpoints with httpx:

    GET   /orders                 (bearer)  -> {orders: [...]}
    PATCH /orders/{id}/status     (bearer)  -> {order, message?}
    GET   /public-order?orderId=            -> {order}
    POST  /submit-order           (bearer, optional) -> order

Transport failures become NetworkError, 404 becomes NotFoundError and
any other non-2xx becomes ServerRejectionError carrying the server's
``error`` text.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from orderdesk.core.config import ClientContext
from orderdesk.core.exceptions import NetworkError, NotFoundError, ServerRejectionError
from orderdesk.schemas import (
    Driver,
    Order,
    OrderListResponse,
    OrderStatus,
    OrderSubmission,
    PublicOrderResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from orderdesk.services.orders.base import BaseOrderApi

logger = logging.getLogger(__name__)


class HttpOrderApi(BaseOrderApi):
    """
    Order store client over HTTP.

    Example:
        >>> api = HttpOrderApi(ClientContext(base_url="https://api.example.com", auth_token="..."))
        >>> orders = await api.list_orders()
    """

    def __init__(
        self,
        context: ClientContext,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            context: Base URL, auth token and timeout
            transport: Optional httpx transport (in-process store, tests)
        """
        self._context = context
        self._client = httpx.AsyncClient(
            base_url=context.base_url,
            timeout=context.timeout_seconds,
            transport=transport,
        )
        logger.info(f"HttpOrderApi initialized (base_url={context.base_url})")

    @property
    def provider_name(self) -> str:
        return "http"

    async def __aenter__(self) -> "HttpOrderApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # PLUMBING
    # =========================================================================

    def _headers(self, auth: bool) -> dict[str, str]:
        if auth and self._context.auth_token:
            return {"Authorization": f"Bearer {self._context.auth_token}"}
        return {}

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase
        if isinstance(body, dict):
            message = body.get("error") or body.get("detail")
            if message:
                return str(message)
        return response.reason_phrase

    async def _request(self, method: str, url: str, *, auth: bool, **kwargs) -> Any:
        try:
            response = await self._client.request(method, url, headers=self._headers(auth), **kwargs)
        except httpx.RequestError as e:
            logger.warning(f"{method} {url} failed: {e!r}")
            raise NetworkError(f"Could not reach order store: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(self._error_message(response))
        if response.is_error:
            message = self._error_message(response)
            logger.warning(f"{method} {url} rejected [{response.status_code}]: {message}")
            raise ServerRejectionError(response.status_code, message)

        try:
            return response.json()
        except ValueError as e:
            raise ServerRejectionError(response.status_code, "Order store returned invalid JSON") from e

    @staticmethod
    def _parse(model: type[BaseModel], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            logger.error(f"Malformed {model.__name__} payload: {e}")
            raise ServerRejectionError(502, f"Malformed {model.__name__} from order store") from e

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    async def list_orders(self) -> list[Order]:
        data = await self._request("GET", "/orders", auth=True)
        return self._parse(OrderListResponse, data).orders

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        driver: Optional[Driver] = None,
    ) -> StatusUpdateResponse:
        body = StatusUpdateRequest(order_id=order_id, status=status, driver=driver)
        data = await self._request(
            "PATCH",
            f"/orders/{order_id}/status",
            auth=True,
            json=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return self._parse(StatusUpdateResponse, data)

    async def get_public_order(self, order_id: str) -> Order:
        data = await self._request("GET", "/public-order", auth=False, params={"orderId": order_id})
        return self._parse(PublicOrderResponse, data).order

    async def submit_order(self, submission: OrderSubmission) -> Order:
        data = await self._request("POST", "/submit-order", auth=True, json=submission.to_payload())
        if isinstance(data, dict) and isinstance(data.get("order"), dict):
            data = data["order"]
        elif isinstance(data, dict) and "orderId" in data and "status" not in data:
            # Older stores only acknowledge with {success, orderId, message}
            data = {
                **submission.model_dump(exclude_none=True),
                "id": data["orderId"],
                "status": OrderStatus.PENDING,
            }
        order = self._parse(Order, data)
        logger.info(f"Order {order.id} submitted ({order.order_type.value})")
        return order

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/health", auth=False)
        except (NetworkError, ServerRejectionError) as e:
            logger.error(f"Order store health check failed: {e}")
            return False
        return True
