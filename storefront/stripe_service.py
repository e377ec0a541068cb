import stripe

from storefront.config import get_settings

# Shipping rates for Austria, in cents
SHIPPING_RATES = {
    "standard": {"name": "Standard Versand (3-5 Werktage)", "amount": 990},
    "express": {"name": "Express Versand (1-2 Werktage)", "amount": 1990},
    "pickup": {"name": "Selbstabholung", "amount": 0},
    "assembly": {"name": "Lieferung mit Montage", "amount": 4990},
}

CURRENCY = "eur"


def _configure():
    stripe.api_key = get_settings().stripe_secret_key


def build_line_items(cart_items: list) -> list:
    line_items = []
    for item in cart_items:
        product_data = {
            "name": item.product_name,
            "images": [item.product_image] if item.product_image else [],
        }
        if item.product_description:
            product_data["description"] = item.product_description
        line_items.append({
            "price_data": {
                "currency": CURRENCY,
                "product_data": product_data,
                "unit_amount": item.price,
            },
            "quantity": item.quantity,
        })
    return line_items


def build_shipping_line_item(shipping_method: str):
    shipping = SHIPPING_RATES.get(shipping_method)
    if not shipping or shipping["amount"] == 0:
        return None
    return {
        "price_data": {
            "currency": CURRENCY,
            "product_data": {"name": shipping["name"]},
            "unit_amount": shipping["amount"],
        },
        "quantity": 1,
    }


def create_checkout_session(
    line_items: list,
    metadata: dict,
    customer_email,
    client_reference_id: str,
    origin: str,
):
    _configure()
    return stripe.checkout.Session.create(
        payment_method_types=["card"],
        line_items=line_items,
        mode="payment",
        customer_email=customer_email or None,
        client_reference_id=client_reference_id,
        metadata=metadata,
        success_url=f"{origin}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{origin}/checkout",
        allow_promotion_codes=True,
    )


def retrieve_checkout_session(session_id: str):
    _configure()
    return stripe.checkout.Session.retrieve(session_id)


def list_line_items(session_id: str) -> list:
    _configure()
    return list(stripe.checkout.Session.list_line_items(session_id, limit=100)["data"])


def construct_event(payload: bytes, signature: str):
    return stripe.Webhook.construct_event(
        payload,
        signature,
        get_settings().stripe_webhook_secret
    )
