"""
Pydantic Schemas for the Order Lifecycle

Wire models shared by the API client, the pollers and the simulation
order store:
- Order snapshot as returned by the order store
- Diner order submission (validated before anything is sent)
- Status update request/response envelopes

Author: Khalil Bannouri
Version: 1.0.0
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from orderdesk.core.exceptions import ValidationError


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatus(str, Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    """Order type - eaten at a table or taken away."""
    DINE_IN = "dine_in"
    TAKE_OUT = "take_out"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PENDING_CASH = "pending_cash"
    PAID = "paid"


# legacy column values
PAYMENT_STATUS_ALIASES: dict[str, str] = {
    "pending": PaymentStatus.UNPAID.value,
}


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    CASH = "cash"


def _coerce_decimal(v: Any) -> Any:
    # floats go through str() so 12.42 stays 12.42
    if isinstance(v, float):
        return str(v)
    return v


# =============================================================================
# ORDER SNAPSHOT
# =============================================================================

class Driver(BaseModel):
    """Delivery driver attached when a take-out order leaves the kitchen."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., max_length=100, examples=["Sam"])
    phone: Optional[str] = Field(None, max_length=30, examples=["+33 6 12 34 56 78"])


class OrderItem(BaseModel):
    """
    Single line item.

    The core never interprets items beyond display, so any extra keys
    (modifiers, gift flags, ...) are kept as-is.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = Field(..., min_length=1, examples=["Margherita"])
    size: Optional[str] = Field(None, examples=["large"])
    price: Optional[Decimal] = Field(None, ge=0, examples=[12.5])
    quantity: int = Field(default=1, ge=1)

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> Any:
        return _coerce_decimal(v)


class Order(BaseModel):
    """
    Order snapshot as seen by a client.

    Snapshots are immutable: a status change produces a new Order built
    from the server's acknowledgement.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    order_number: Optional[int] = None
    status: OrderStatus
    order_type: OrderType
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None
    total_price: Decimal = Decimal("0")
    commission_amount: Optional[Decimal] = None
    items: List[OrderItem] = Field(default_factory=list)
    driver: Optional[Driver] = None
    restaurant_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", "table_number", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("total_price", "commission_amount", mode="before")
    @classmethod
    def coerce_money(cls, v: Any) -> Any:
        return _coerce_decimal(v)

    @field_validator("payment_status", mode="before")
    @classmethod
    def normalize_payment_status(cls, v: Any) -> Any:
        # the column defaults to "pending" until a payment lands; other
        # values the core does not know about are dropped
        if isinstance(v, str) and not isinstance(v, PaymentStatus):
            v = PAYMENT_STATUS_ALIASES.get(v.lower(), v.lower())
            return v if v in {s.value for s in PaymentStatus} else None
        return v

    @field_validator("items", mode="before")
    @classmethod
    def parse_items(cls, v: Any) -> Any:
        # Some stores hand the JSON column back as text
        if isinstance(v, str):
            return json.loads(v) if v else []
        return v if v is not None else []

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING

    def __repr__(self):
        return f"<Order #{self.order_number or self.id} - {self.order_type.value} - {self.status.value}>"


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderSubmission(BaseModel):
    """Diner-side order submission, validated before it is sent."""
    model_config = ConfigDict(populate_by_name=True)

    restaurant_name: str = Field(..., min_length=1, alias="restaurantName")
    order_type: OrderType = Field(..., alias="orderType")
    table_number: Optional[str] = Field(None, max_length=20, alias="tableNumber")
    delivery_address: Optional[str] = Field(None, max_length=255, alias="deliveryAddress")
    payment_method: PaymentMethod = Field(..., alias="paymentMethod")
    items: List[OrderItem] = Field(..., min_length=1)
    total_price: Decimal = Field(..., ge=0, alias="totalPrice")

    @field_validator("table_number", mode="before")
    @classmethod
    def stringify_table(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("total_price", mode="before")
    @classmethod
    def coerce_total(cls, v: Any) -> Any:
        return _coerce_decimal(v)

    @model_validator(mode="after")
    def check_destination(self) -> "OrderSubmission":
        if self.order_type == OrderType.DINE_IN and not (self.table_number or "").strip():
            raise ValueError("Table number required for dine-in orders")
        if self.order_type == OrderType.TAKE_OUT and not (self.delivery_address or "").strip():
            raise ValueError("Delivery address required for take-out orders")
        return self

    @field_serializer("total_price", when_used="json")
    def serialize_total(self, v: Decimal) -> float:
        return float(v)

    def to_payload(self) -> dict[str, Any]:
        """Body for POST /submit-order."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StatusUpdateRequest(BaseModel):
    """Body for PATCH /orders/{id}/status."""
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId")
    status: OrderStatus
    driver: Optional[Driver] = None

    @field_validator("order_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        return v if isinstance(v, str) else str(v)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderListResponse(BaseModel):
    """Response of GET /orders."""
    orders: List[Order] = Field(default_factory=list)


class StatusUpdateResponse(BaseModel):
    """
    Response of PATCH /orders/{id}/status.

    ``order`` may be a partial row (id, status, updated_at); the caller
    merges it onto its own snapshot.
    """
    success: bool = True
    order: dict[str, Any]
    message: Optional[str] = None


class PublicOrderResponse(BaseModel):
    """Response of GET /public-order."""
    order: Order


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None


# =============================================================================
# HELPERS
# =============================================================================

def validate_submission(data: dict[str, Any]) -> OrderSubmission:
    """
    Build an OrderSubmission, turning schema errors into ValidationError.

    Raises:
        ValidationError: First problem found, with the offending field
    """
    try:
        return OrderSubmission.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or None
        message = first.get("msg", "Invalid order")
        # model-level ValueErrors come through as "Value error, <text>"
        message = message.removeprefix("Value error, ")
        raise ValidationError(message, field=field) from e
