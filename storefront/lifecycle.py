"""
Order lifecycle.

Orders move pending -> processing -> shipped -> delivered; cancelled is
reachable from pending and processing. Payment events from Stripe create
orders and settle their payment status, administrators drive the rest.

Customer emails are sent after the state change is committed and never
affect its outcome.
"""
import json
import logging
import secrets
import string
import time
from typing import Optional

import stripe
from sqlalchemy.orm import Session

from storefront import crud
from storefront.config import get_settings
from storefront.emails import EmailItem, LANGUAGES, OrderConfirmation, ShippingNotification
from storefront.errors import (
    DuplicateError,
    InvalidEventError,
    InvalidTransitionError,
    NotFoundError,
    StoreUnavailableError,
)
from storefront.mailer import send_order_confirmation_email, send_shipping_notification_email
from storefront.models import Order, OrderStatus, PaymentStatus, User
from storefront.stripe_service import SHIPPING_RATES, list_line_items

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

# Only paid orders may leave the warehouse
REQUIRES_PAYMENT = {OrderStatus.SHIPPED, OrderStatus.DELIVERED}

SHIPPING_KEYWORDS = ("versand", "shipping", "lieferung", "delivery")

CUSTOMER_PLACEHOLDER = {"de": "Kunde", "en": "Customer"}

TEST_EVENT_PREFIX = "evt_test_"

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def resolve_language(value: Optional[str]) -> str:
    default = get_settings().default_language
    if value in LANGUAGES:
        return value
    if value:
        logger.warning("Unsupported language %r, falling back to %s", value, default)
    return default


def check_transition(order: Order, new_status: OrderStatus) -> None:
    current = OrderStatus(order.status)
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Order {order.order_number} cannot move from {current.value} to {new_status.value}"
        )
    if new_status in REQUIRES_PAYMENT and order.payment_status != PaymentStatus.COMPLETED.value:
        raise InvalidTransitionError(
            f"Order {order.order_number} is not paid (payment status {order.payment_status})"
        )


def split_line_items(line_items: list):
    """Separate a trailing shipping fee from the product line items.

    Returns the product items as dicts and the shipping cost in cents.
    """
    items = []
    for line in line_items:
        quantity = line.get("quantity") or 1
        price = line.get("price") or {}
        unit_amount = price.get("unit_amount")
        if unit_amount is None:
            unit_amount = (line.get("amount_total") or 0) // quantity
        items.append({
            "product_name": line.get("description") or "",
            "price": unit_amount,
            "quantity": quantity,
        })

    shipping_cost = 0
    if items:
        name = items[-1]["product_name"].lower()
        if any(keyword in name for keyword in SHIPPING_KEYWORDS):
            shipping = items.pop()
            shipping_cost = shipping["price"] * shipping["quantity"]
    return items, shipping_cost


def customer_name_from_address(shipping_address: Optional[str], language: str) -> str:
    placeholder = CUSTOMER_PLACEHOLDER[language]
    if not shipping_address:
        return placeholder
    try:
        details = json.loads(shipping_address)
    except ValueError:
        first_line = shipping_address.split("\n")[0].strip()
        return first_line or placeholder

    if not isinstance(details, dict):
        return placeholder
    if details.get("name"):
        return details["name"]
    address = details.get("address")
    if isinstance(address, dict) and address.get("line1"):
        return address["line1"].split("\n")[0] or placeholder
    return placeholder


def format_address(details: dict) -> str:
    address = details.get("address") or {}
    city = " ".join(
        part for part in (address.get("postal_code"), address.get("city")) if part
    )
    lines = [
        details.get("name"),
        address.get("line1"),
        address.get("line2"),
        city,
        address.get("country"),
    ]
    return "\n".join(line for line in lines if line)


def _plain(value):
    if hasattr(value, "items"):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _to_int(value) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


async def handle_event(db: Session, event) -> dict:
    """Apply one verified Stripe event and return the acknowledgement body."""
    if event["id"].startswith(TEST_EVENT_PREFIX):
        logger.info("Test event %s detected, returning verification response", event["id"])
        return {"verified": True}

    event_type = event["type"]
    payload = event["data"]["object"]
    logger.info("Received event: %s (%s)", event_type, event["id"])

    if event_type == "checkout.session.completed":
        await confirm_payment(db, payload)
    elif event_type == "payment_intent.succeeded":
        update_payment_status(db, payload["id"], PaymentStatus.COMPLETED)
    elif event_type == "payment_intent.payment_failed":
        update_payment_status(db, payload["id"], PaymentStatus.FAILED)
    else:
        logger.info("Unhandled event type: %s", event_type)

    return {"received": True}


async def confirm_payment(db: Session, session) -> Optional[Order]:
    """Create the order for a paid checkout session.

    Replays of the same session are ignored: the checkout session id is
    unique per order.
    """
    session_id = session["id"]
    if session.get("payment_status") != "paid":
        logger.info("Checkout session %s not paid (%s), ignoring", session_id, session.get("payment_status"))
        return None

    metadata = _plain(session.get("metadata") or {})
    user_id = _to_int(metadata.get("user_id"))
    if not user_id:
        logger.error("Checkout session %s is missing user_id in metadata", session_id)
        raise InvalidEventError("Missing user_id")
    if crud.get_user_by_id(db, user_id) is None:
        logger.error("Checkout session %s references unknown user %s", session_id, user_id)
        raise InvalidEventError("Unknown user_id")

    if crud.get_order_by_checkout_session(db, session_id) is not None:
        logger.info("Order for checkout session %s already exists, skipping", session_id)
        return None

    language = resolve_language(metadata.get("language"))
    shipping_method = metadata.get("shipping_method") or "standard"
    customer_details = _plain(session.get("customer_details") or {})
    collected = _plain(session.get("collected_information") or {})
    shipping_details = (
        _plain(session.get("shipping_details") or {})
        or collected.get("shipping_details")
        or {}
    )
    total_details = _plain(session.get("total_details") or {})

    try:
        items, shipping_cost = split_line_items(list_line_items(session_id))
    except stripe.StripeError as e:
        logger.error("Could not fetch line items for %s: %s", session_id, e)
        items = []
        shipping_cost = SHIPPING_RATES.get(shipping_method, {}).get("amount", 0)

    discount_amount = _to_int(metadata.get("discount_amount")) or _to_int(
        total_details.get("amount_discount")
    )
    customer_email = (
        metadata.get("customer_email")
        or session.get("customer_email")
        or customer_details.get("email")
        or ""
    )

    order_data = {
        "user_id": user_id,
        "order_number": generate_order_number(),
        "status": OrderStatus.PROCESSING.value,
        "total_amount": _to_int(session.get("amount_total")),
        "shipping_cost": shipping_cost,
        "discount_amount": discount_amount,
        "promo_code": metadata.get("promo_code") or None,
        "shipping_method": shipping_method,
        "payment_method": "card",
        "payment_status": PaymentStatus.COMPLETED.value,
        "customer_email": customer_email,
        "customer_phone": customer_details.get("phone"),
        "shipping_address": json.dumps(shipping_details),
        "billing_address": json.dumps(customer_details),
        "language": language,
        "stripe_payment_intent_id": session.get("payment_intent"),
        "stripe_checkout_session_id": session_id,
    }

    try:
        order = crud.create_order_with_items(db, order_data, items, session.get("customer"))
    except DuplicateError:
        logger.info("Order for checkout session %s was created concurrently, skipping", session_id)
        return None

    logger.info("Created order %s for user %s", order.order_number, user_id)

    if not customer_email:
        logger.warning("No customer email for order %s, skipping confirmation", order.order_number)
        return order

    customer_name = (
        metadata.get("customer_name")
        or shipping_details.get("name")
        or customer_details.get("name")
        or CUSTOMER_PLACEHOLDER[language]
    )
    confirmation = OrderConfirmation(
        order_number=order.order_number,
        customer_name=customer_name,
        customer_email=customer_email,
        items=[EmailItem(**item) for item in items],
        subtotal=sum(item["price"] * item["quantity"] for item in items),
        shipping_cost=order.shipping_cost,
        discount_amount=order.discount_amount,
        total=order.total_amount,
        shipping_method=shipping_method,
        shipping_address=format_address(shipping_details or customer_details),
        language=language,
    )
    if not await send_order_confirmation_email(confirmation):
        logger.warning("Order confirmation email for %s was not sent", order.order_number)
    return order


def update_payment_status(db: Session, payment_intent_id: str, payment_status: PaymentStatus) -> None:
    try:
        updated = crud.set_payment_status_by_intent(db, payment_intent_id, payment_status.value)
    except StoreUnavailableError:
        logger.error(
            "Could not set payment status %s for payment intent %s",
            payment_status.value, payment_intent_id,
        )
        return
    if updated:
        logger.info("Payment intent %s: payment status %s", payment_intent_id, payment_status.value)
    else:
        # the checkout event that creates the order may not have arrived yet
        logger.warning("No order for payment intent %s", payment_intent_id)


async def mark_shipped(
    db: Session,
    order_id: int,
    tracking_number: str,
    carrier: str,
    actor: User,
    estimated_delivery: Optional[str] = None,
) -> Order:
    order = crud.get_order_by_id(db, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    check_transition(order, OrderStatus.SHIPPED)

    changes = {
        "status": OrderStatus.SHIPPED.value,
        "tracking_number": tracking_number,
        "carrier": carrier,
        "estimated_delivery": estimated_delivery or None,
    }
    order = crud.update_order(db, order, changes)
    crud.record_audit(db, actor.id, "order.mark_shipped", "order", order.id, changes)
    logger.info("Order %s marked as shipped (%s %s)", order.order_number, carrier, tracking_number)

    if not order.customer_email:
        logger.warning("No customer email for order %s, skipping shipping notification", order.order_number)
        return order

    language = resolve_language(order.language)
    notification = ShippingNotification(
        order_number=order.order_number,
        customer_name=customer_name_from_address(order.shipping_address, language),
        customer_email=order.customer_email,
        tracking_number=tracking_number,
        carrier=carrier,
        estimated_delivery=estimated_delivery or None,
        shipping_method=order.shipping_method or "standard",
        language=language,
    )
    if await send_shipping_notification_email(notification):
        logger.info("Shipping notification sent for order %s", order.order_number)
    else:
        logger.warning("Shipping notification for order %s was not sent", order.order_number)
    return order


def change_status(db: Session, order_id: int, new_status: OrderStatus, actor: User) -> Order:
    order = crud.get_order_by_id(db, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    check_transition(order, new_status)

    previous = order.status
    order = crud.update_order(db, order, {"status": new_status.value})
    crud.record_audit(
        db, actor.id, "order.change_status", "order", order.id,
        {"from": previous, "to": new_status.value},
    )
    logger.info("Order %s moved from %s to %s", order.order_number, previous, new_status.value)
    return order
