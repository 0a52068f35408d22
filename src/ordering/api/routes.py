"""FastAPI routes for the ordering domain: carts, orders and payments."""

import math
import os

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.access import ensure_admin, ensure_buyer, ensure_can_view, is_admin
from ordering.api.auth import Principal, get_principal
from ordering.api.schemas import (
    AddPaymentMethodRequest,
    AddToCartRequest,
    CancelOrderRequest,
    CheckoutRequest,
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    OrderItemResponse,
    OrderPage,
    OrderResponse,
    PaymentMethodResponse,
    ProcessPaymentRequest,
    RefundRequest,
    StatusResponse,
    TransactionPage,
    TransactionResponse,
    UpdateFulfillmentRequest,
    UpdateOrderStatusRequest,
)
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import ClearCart, OpenCart
from ordering.checkout.checkout import Checkout
from ordering.errors import GatewayFailure, Unauthorized
from ordering.gateway import get_gateway
from ordering.gateway.fake_adapter import FakeGateway
from ordering.order.cancellation import CancelOrder
from ordering.order.fulfillment import AdvanceItemFulfillment
from ordering.order.lifecycle import OrderStatus
from ordering.order.order import Order
from ordering.order.status import CompleteOrder, MarkDelivered, MarkProcessing, MarkShipped
from ordering.payment.methods import AddPaymentMethod, RemovePaymentMethod, SetDefaultPaymentMethod
from ordering.payment.processing import ProcessPayment
from ordering.payment.refund import ProcessRefund
from ordering.payment.transaction import Transaction, TransactionStatus
from ordering.payment.vault import PaymentVault

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Response mapping
# ---------------------------------------------------------------------------
def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        buyer_id=str(order.buyer_id),
        university_id=str(order.university_id) if order.university_id else None,
        status=order.status,
        items=[
            OrderItemResponse(
                item_id=str(item.id),
                product_id=str(item.product_id),
                seller_id=str(item.seller_id),
                product_title=item.product_title,
                product_condition=item.product_condition,
                unit_price=item.unit_price,
                quantity=item.quantity,
                total_price=item.total_price,
                fulfillment_status=item.fulfillment_status,
                shipped_at=item.shipped_at,
                delivered_at=item.delivered_at,
                completed_at=item.completed_at,
            )
            for item in order.items
        ],
        subtotal=order.subtotal,
        tax_amount=order.tax_amount,
        delivery_fee=order.delivery_fee,
        platform_fee=order.platform_fee,
        total_amount=order.total_amount,
        delivery_method=order.delivery_method,
        delivery_address_id=str(order.delivery_address_id) if order.delivery_address_id else None,
        buyer_notes=order.buyer_notes,
        tracking_number=order.tracking_number,
        cart_created_at=order.cart_created_at,
        ordered_at=order.ordered_at,
        paid_at=order.paid_at,
        processing_at=order.processing_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        completed_at=order.completed_at,
        cancelled_at=order.cancelled_at,
        refunded_at=order.refunded_at,
    )


def _payment_method_response(method) -> PaymentMethodResponse:
    return PaymentMethodResponse(
        payment_method_id=str(method.id),
        method_type=method.method_type,
        last_four=method.last_four,
        card_brand=method.card_brand,
        expiry_month=method.expiry_month,
        expiry_year=method.expiry_year,
        is_default=method.is_default,
        is_expired=method.is_expired(),
    )


def _transaction_response(transaction: Transaction) -> TransactionResponse:
    return TransactionResponse(
        transaction_id=str(transaction.id),
        order_id=str(transaction.order_id),
        payment_method_id=str(transaction.payment_method_id) if transaction.payment_method_id else None,
        amount=transaction.amount,
        status=transaction.status,
        payment_gateway=transaction.payment_gateway,
        gateway_transaction_id=transaction.gateway_transaction_id,
        gateway_response=transaction.gateway_response,
        failure_reason=transaction.failure_reason,
        processed_at=transaction.processed_at,
        refunded_at=transaction.refunded_at,
        refund_amount=transaction.refund_amount,
    )


def _load_order(order_id: str) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def _page_of(rows: list, page: int, size: int, to_response) -> dict:
    """Slice ``rows`` to one zero-based page and describe where it sits."""
    start = page * size
    return {
        "items": [to_response(row) for row in rows[start : start + size]],
        "page": page,
        "size": size,
        "total": len(rows),
        "total_pages": math.ceil(len(rows) / size),
    }


PAGE = Query(0, ge=0, description="Zero-based page number")
PAGE_SIZE = Query(20, ge=1, le=100, description="Entries per page")


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/api/orders", tags=["orders"])


@order_router.get("/cart", response_model=OrderResponse)
async def get_cart(principal: Principal = Depends(get_principal)) -> OrderResponse:
    """The caller's cart, opened on first access."""
    order_id = current_domain.process(
        OpenCart(buyer_id=principal.user_id, university_id=principal.university_id),
        asynchronous=False,
    )
    return _order_response(_load_order(order_id))


@order_router.post("/cart/items", response_model=OrderResponse)
async def add_cart_item(body: AddToCartRequest, principal: Principal = Depends(get_principal)) -> OrderResponse:
    command = AddToCart(
        buyer_id=principal.user_id,
        university_id=principal.university_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return _order_response(_load_order(order_id))


@order_router.put("/cart/items/{item_id}", response_model=OrderResponse)
async def update_cart_item(
    item_id: str,
    quantity: int = Query(...),
    principal: Principal = Depends(get_principal),
) -> OrderResponse:
    """Set a line's quantity. Zero or less removes the line."""
    command = UpdateCartQuantity(buyer_id=principal.user_id, item_id=item_id, quantity=quantity)
    order_id = current_domain.process(command, asynchronous=False)
    return _order_response(_load_order(order_id))


@order_router.delete("/cart/items/{item_id}", response_model=OrderResponse)
async def remove_cart_item(item_id: str, principal: Principal = Depends(get_principal)) -> OrderResponse:
    command = RemoveFromCart(buyer_id=principal.user_id, item_id=item_id)
    order_id = current_domain.process(command, asynchronous=False)
    return _order_response(_load_order(order_id))


@order_router.delete("/cart", response_model=OrderResponse)
async def clear_cart(principal: Principal = Depends(get_principal)) -> OrderResponse:
    current_domain.process(
        OpenCart(buyer_id=principal.user_id, university_id=principal.university_id),
        asynchronous=False,
    )
    order_id = current_domain.process(ClearCart(buyer_id=principal.user_id), asynchronous=False)
    return _order_response(_load_order(order_id))


@order_router.post("/checkout", response_model=OrderResponse)
async def checkout(body: CheckoutRequest, principal: Principal = Depends(get_principal)) -> OrderResponse:
    command = Checkout(
        buyer_id=principal.user_id,
        delivery_method=body.delivery_method,
        delivery_address_id=body.delivery_address_id,
        buyer_notes=body.notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return _order_response(_load_order(order_id))


@order_router.get("", response_model=OrderPage)
async def order_history(
    page: int = PAGE,
    size: int = PAGE_SIZE,
    principal: Principal = Depends(get_principal),
) -> OrderPage:
    """Orders the caller has placed, newest first."""
    orders = current_domain.repository_for(Order).history_for(principal.user_id)
    return OrderPage(**_page_of(orders, page, size, _order_response))


@order_router.get("/seller", response_model=OrderPage)
async def seller_orders(
    page: int = PAGE,
    size: int = PAGE_SIZE,
    principal: Principal = Depends(get_principal),
) -> OrderPage:
    """Placed orders holding at least one line the caller sells, newest first."""
    orders = current_domain.repository_for(Order).for_seller(principal.user_id)
    return OrderPage(**_page_of(orders, page, size, _order_response))


@order_router.get("/admin/status/{status}", response_model=OrderPage)
async def orders_by_status(
    status: str,
    page: int = PAGE,
    size: int = PAGE_SIZE,
    principal: Principal = Depends(get_principal),
) -> OrderPage:
    ensure_admin(principal.role, "list orders by status")
    try:
        wanted = OrderStatus(status.upper())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown order status {status}") from None
    orders = current_domain.repository_for(Order).with_status(wanted)
    return OrderPage(**_page_of(orders, page, size, _order_response))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, principal: Principal = Depends(get_principal)) -> OrderResponse:
    order = _load_order(order_id)
    ensure_can_view(order, principal.user_id, principal.role)
    return _order_response(order)


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    principal: Principal = Depends(get_principal),
) -> OrderResponse:
    target = body.status.upper()
    if target == OrderStatus.PROCESSING.value:
        command = MarkProcessing(order_id=order_id, actor_id=principal.user_id)
    elif target == OrderStatus.SHIPPED.value:
        command = MarkShipped(
            order_id=order_id,
            actor_id=principal.user_id,
            tracking_number=body.tracking_number,
        )
    elif target == OrderStatus.DELIVERED.value:
        command = MarkDelivered(order_id=order_id, actor_id=principal.user_id, actor_role=principal.role)
    elif target == OrderStatus.COMPLETED.value:
        command = CompleteOrder(order_id=order_id, actor_id=principal.user_id)
    elif target == OrderStatus.CANCELLED.value:
        command = CancelOrder(
            order_id=order_id,
            actor_id=principal.user_id,
            actor_role=principal.role,
            reason=body.reason,
        )
    else:
        raise HTTPException(status_code=400, detail=f"Status {body.status} cannot be set directly")

    current_domain.process(command, asynchronous=False)
    return _order_response(_load_order(order_id))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    principal: Principal = Depends(get_principal),
) -> OrderResponse:
    command = CancelOrder(
        order_id=order_id,
        actor_id=principal.user_id,
        actor_role=principal.role,
        reason=body.reason if body else None,
    )
    current_domain.process(command, asynchronous=False)
    return _order_response(_load_order(order_id))


@order_router.put("/{order_id}/items/{item_id}/fulfillment", response_model=OrderResponse)
async def update_item_fulfillment(
    order_id: str,
    item_id: str,
    body: UpdateFulfillmentRequest,
    principal: Principal = Depends(get_principal),
) -> OrderResponse:
    """A seller advances one of their lines."""
    command = AdvanceItemFulfillment(
        order_id=order_id,
        item_id=item_id,
        seller_id=principal.user_id,
        status=body.status.upper(),
    )
    current_domain.process(command, asynchronous=False)
    return _order_response(_load_order(order_id))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.get("/methods", response_model=list[PaymentMethodResponse])
async def list_payment_methods(principal: Principal = Depends(get_principal)) -> list[PaymentMethodResponse]:
    """Active methods, default first, then most recently added."""
    vault = current_domain.repository_for(PaymentVault).for_owner(principal.user_id)
    if vault is None:
        return []
    return [_payment_method_response(m) for m in vault.active_methods()]


@payment_router.post("/methods", status_code=201, response_model=PaymentMethodResponse)
async def add_payment_method(
    body: AddPaymentMethodRequest,
    principal: Principal = Depends(get_principal),
) -> PaymentMethodResponse:
    command = AddPaymentMethod(
        owner_id=principal.user_id,
        method_type=body.method_type,
        token=body.payment_token,
        last_four=body.last_four,
        card_brand=body.card_brand,
        expiry_month=body.expiry_month,
        expiry_year=body.expiry_year,
        billing_address_id=body.billing_address_id,
        make_default=body.make_default,
    )
    method_id = current_domain.process(command, asynchronous=False)
    vault = current_domain.repository_for(PaymentVault).for_owner(principal.user_id)
    return _payment_method_response(vault.active_method(method_id))


@payment_router.get("/methods/{method_id}", response_model=PaymentMethodResponse)
async def get_payment_method(method_id: str, principal: Principal = Depends(get_principal)) -> PaymentMethodResponse:
    """One active method from the caller's vault. Methods of other users are not found."""
    vault = current_domain.repository_for(PaymentVault).for_owner(principal.user_id)
    if vault is None:
        raise ObjectNotFoundError({"_entity": f"Payment method {method_id} not found"})
    return _payment_method_response(vault.active_method(method_id))


@payment_router.put("/methods/{method_id}/default", response_model=PaymentMethodResponse)
async def set_default_payment_method(
    method_id: str,
    principal: Principal = Depends(get_principal),
) -> PaymentMethodResponse:
    command = SetDefaultPaymentMethod(owner_id=principal.user_id, payment_method_id=method_id)
    current_domain.process(command, asynchronous=False)
    vault = current_domain.repository_for(PaymentVault).for_owner(principal.user_id)
    return _payment_method_response(vault.active_method(method_id))


@payment_router.delete("/methods/{method_id}", response_model=StatusResponse)
async def remove_payment_method(method_id: str, principal: Principal = Depends(get_principal)) -> StatusResponse:
    command = RemovePaymentMethod(owner_id=principal.user_id, payment_method_id=method_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@payment_router.post("/process", response_model=TransactionResponse)
async def process_payment(
    body: ProcessPaymentRequest,
    principal: Principal = Depends(get_principal),
) -> TransactionResponse:
    """Charge an order awaiting payment.

    A declined charge is still recorded as a FAILED transaction; the caller
    receives a 402 carrying its id and may retry.
    """
    command = ProcessPayment(
        order_id=body.order_id,
        payment_method_id=body.payment_method_id,
        buyer_id=principal.user_id,
        idempotency_key=body.idempotency_key,
    )
    transaction_id = current_domain.process(command, asynchronous=False)
    transaction = current_domain.repository_for(Transaction).get(transaction_id)
    if transaction.status == TransactionStatus.FAILED.value:
        raise GatewayFailure(transaction.failure_reason, transaction_id=str(transaction.id))
    return _transaction_response(transaction)


@payment_router.post("/refund", response_model=TransactionResponse)
async def refund_order(body: RefundRequest, principal: Principal = Depends(get_principal)) -> TransactionResponse:
    """Refund a settled order. A refused refund is recorded and answered with a 402."""
    command = ProcessRefund(
        order_id=body.order_id,
        refund_amount=body.refund_amount,
        actor_id=principal.user_id,
        actor_role=principal.role,
        reason=body.reason,
    )
    transaction_id = current_domain.process(command, asynchronous=False)
    transaction = current_domain.repository_for(Transaction).get(transaction_id)
    if transaction.status == TransactionStatus.FAILED.value:
        raise GatewayFailure(transaction.failure_reason, transaction_id=str(transaction.id))
    return _transaction_response(transaction)


@payment_router.get("/transactions", response_model=TransactionPage)
async def transaction_history(
    page: int = PAGE,
    size: int = PAGE_SIZE,
    principal: Principal = Depends(get_principal),
) -> TransactionPage:
    transactions = current_domain.repository_for(Transaction).for_user(principal.user_id)
    return TransactionPage(**_page_of(transactions, page, size, _transaction_response))


@payment_router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(transaction_id: str, principal: Principal = Depends(get_principal)) -> TransactionResponse:
    transaction = current_domain.repository_for(Transaction).get(transaction_id)
    if str(transaction.user_id) != str(principal.user_id):
        raise Unauthorized("Only the owner can view this transaction")
    return _transaction_response(transaction)


@payment_router.get("/orders/{order_id}/transactions", response_model=list[TransactionResponse])
async def order_transactions(order_id: str, principal: Principal = Depends(get_principal)) -> list[TransactionResponse]:
    order = _load_order(order_id)
    if not is_admin(principal.role):
        ensure_buyer(order, principal.user_id, "view this order's payments")
    transactions = current_domain.repository_for(Transaction).for_order(order.id)
    return [_transaction_response(t) for t in transactions]


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Toggle the mock gateway between approving and declining (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(should_succeed=body.should_succeed, failure_reason=body.failure_reason)
    logger.info(
        "gateway_configured",
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )
    return GatewayConfigResponse(
        gateway=gateway.name,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )
