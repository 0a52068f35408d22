"""Pydantic request/response schemas for the ordering API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands and aggregates.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Cart & checkout requests
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-calculus-textbook",
                    "quantity": 1,
                }
            ]
        }
    }


class CheckoutRequest(BaseModel):
    delivery_method: str
    delivery_address_id: str | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "delivery_method": "CAMPUS_PICKUP",
                    "delivery_address_id": None,
                    "notes": "Meet at the library entrance",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Order requests
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str
    tracking_number: str | None = None
    reason: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "SHIPPED",
                    "tracking_number": "1Z999AA10123456784",
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class UpdateFulfillmentRequest(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# Payment requests
# ---------------------------------------------------------------------------
class AddPaymentMethodRequest(BaseModel):
    method_type: str
    payment_token: str
    last_four: str | None = Field(default=None, min_length=4, max_length=4)
    card_brand: str | None = None
    expiry_month: int | None = Field(default=None, ge=1, le=12)
    expiry_year: int | None = None
    billing_address_id: str | None = None
    make_default: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "method_type": "CREDIT_CARD",
                    "payment_token": "tok_visa_4242",
                    "last_four": "4242",
                    "card_brand": "VISA",
                    "expiry_month": 12,
                    "expiry_year": 2030,
                }
            ]
        }
    }


class ProcessPaymentRequest(BaseModel):
    order_id: str
    payment_method_id: str
    idempotency_key: str | None = None


class RefundRequest(BaseModel):
    order_id: str
    refund_amount: float = Field(gt=0)
    reason: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_id": "ord-001",
                    "refund_amount": 40.19,
                    "reason": "Item arrived damaged",
                }
            ]
        }
    }


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Card declined"


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class OrderItemResponse(BaseModel):
    item_id: str
    product_id: str
    seller_id: str
    product_title: str
    product_condition: str | None = None
    unit_price: float
    quantity: int
    total_price: float
    fulfillment_status: str
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None


class OrderResponse(BaseModel):
    order_id: str
    order_number: str | None = None
    buyer_id: str
    university_id: str | None = None
    status: str
    items: list[OrderItemResponse] = []
    subtotal: float
    tax_amount: float
    delivery_fee: float
    platform_fee: float
    total_amount: float
    delivery_method: str | None = None
    delivery_address_id: str | None = None
    buyer_notes: str | None = None
    tracking_number: str | None = None
    cart_created_at: datetime | None = None
    ordered_at: datetime | None = None
    paid_at: datetime | None = None
    processing_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    refunded_at: datetime | None = None


class PaymentMethodResponse(BaseModel):
    payment_method_id: str
    method_type: str
    last_four: str | None = None
    card_brand: str | None = None
    expiry_month: int | None = None
    expiry_year: int | None = None
    is_default: bool
    is_expired: bool


class TransactionResponse(BaseModel):
    transaction_id: str
    order_id: str
    payment_method_id: str | None = None
    amount: float
    status: str
    payment_gateway: str | None = None
    gateway_transaction_id: str | None = None
    gateway_response: str | None = None
    failure_reason: str | None = None
    processed_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_amount: float | None = None


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict = {}


# ---------------------------------------------------------------------------
# Paged listings
# ---------------------------------------------------------------------------
class OrderPage(BaseModel):
    items: list[OrderResponse]
    page: int
    size: int
    total: int
    total_pages: int


class TransactionPage(BaseModel):
    items: list[TransactionResponse]
    page: int
    size: int
    total: int
    total_pages: int
