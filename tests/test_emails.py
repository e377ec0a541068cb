from decimal import Decimal

import pytest

from storefront.emails import (
    EmailItem,
    OrderConfirmation,
    ShippingNotification,
    format_money,
    order_confirmation_subject,
    render_order_confirmation,
    render_shipping_notification,
    shipping_notification_subject,
    tracking_url,
)


def confirmation(**overrides):
    values = dict(
        order_number="ORD-TEST-123",
        customer_name="Max Mustermann",
        customer_email="max@example.com",
        items=[
            EmailItem(product_name="Eiche Esstisch", price=89900, quantity=1, variant_color="Natur"),
            EmailItem(product_name="Stuhl Set (4 Stück)", price=39900, quantity=1),
        ],
        subtotal=129800,
        shipping_cost=990,
        total=130790,
        shipping_method="standard",
        shipping_address="Max Mustermann\nMusterstraße 123\n1010 Wien\nÖsterreich",
        language="de",
    )
    values.update(overrides)
    return OrderConfirmation(**values)


def shipping(**overrides):
    values = dict(
        order_number="ORD-TEST-123",
        customer_name="Max Mustermann",
        customer_email="max@example.com",
        tracking_number="DHL123456789",
        carrier="DHL",
        estimated_delivery="15.01.2026",
        shipping_method="express",
        language="de",
    )
    values.update(overrides)
    return ShippingNotification(**values)


def test_german_order_confirmation():
    html = render_order_confirmation(confirmation())

    assert "Bestellbestätigung" in html
    assert "ORD-TEST-123" in html
    assert "Max Mustermann" in html
    assert "Eiche Esstisch" in html
    assert "Natur" in html
    assert "€899.00" in html
    assert "€1298.00" in html
    assert "€9.90" in html
    assert "€1307.90" in html
    assert "Vielen Dank" in html
    assert "Musterstraße 123<br>1010 Wien" in html


def test_english_order_confirmation():
    html = render_order_confirmation(confirmation(
        order_number="ORD-TEST-456",
        customer_name="John Doe",
        items=[EmailItem(product_name="Oak Dining Table", price=89900, quantity=1)],
        subtotal=89900,
        shipping_cost=1990,
        total=91890,
        shipping_method="express",
        language="en",
    ))

    assert "Order Confirmation" in html
    assert "ORD-TEST-456" in html
    assert "Oak Dining Table" in html
    assert "€899.00" in html
    assert "Thank you" in html
    assert "Express Shipping" in html


def test_confirmation_lists_every_item():
    html = render_order_confirmation(confirmation(items=[
        EmailItem(product_name="Item 1", price=10000, quantity=2),
        EmailItem(product_name="Item 2", price=20000, quantity=1),
        EmailItem(product_name="Item 3", price=15000, quantity=3),
    ]))

    for name, price in (("Item 1", "€100.00"), ("Item 2", "€200.00"), ("Item 3", "€150.00")):
        assert name in html
        assert price in html


def test_discount_row_only_when_discounted():
    assert "Rabatt" not in render_order_confirmation(confirmation())
    assert "-€10.00" in render_order_confirmation(confirmation(discount_amount=1000))


def test_user_text_is_escaped():
    html = render_order_confirmation(confirmation(
        customer_name="<b>Max</b>",
        items=[EmailItem(product_name="<script>alert(1)</script>", price=100, quantity=1)],
    ))

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "&lt;b&gt;Max&lt;/b&gt;" in html


@pytest.mark.parametrize("cents, expected", [
    (12345, "€123.45"),
    (990, "€9.90"),
    (0, "€0.00"),
    (5, "€0.05"),
    (100, "€1.00"),
    (123456789, "€1234567.89"),
])
def test_format_money(cents, expected):
    assert format_money(cents) == expected


@pytest.mark.parametrize("cents", [1, 99, 101, 4990, 130790, 999999999])
def test_format_money_matches_decimal_division(cents):
    expected = "€" + str((Decimal(cents) / 100).quantize(Decimal("0.01")))
    assert format_money(cents) == expected


def test_format_money_rejects_negative_amounts():
    with pytest.raises(ValueError):
        format_money(-1)


@pytest.mark.parametrize("carrier, host", [
    ("DHL", "dhl.at"),
    ("DPD", "tracking.dpd.de"),
    ("Austrian Post", "post.at"),
    ("Post", "post.at"),
    ("GLS", "gls-group.eu"),
])
def test_tracking_url_per_carrier(carrier, host):
    url = tracking_url(carrier, "ABC123XYZ")

    assert host in url
    assert "ABC123XYZ" in url


@pytest.mark.parametrize("carrier", ["Other", "Unknown Carrier", "Hermes"])
def test_tracking_url_falls_back_to_search(carrier):
    url = tracking_url(carrier, "TRACK123")

    assert "google.com/search" in url
    assert "TRACK123" in url


@pytest.mark.parametrize("method, language, expected", [
    ("standard", "de", "Standard Versand"),
    ("express", "de", "Express Versand"),
    ("pickup", "de", "Selbstabholung"),
    ("assembly", "de", "Lieferung mit Montage"),
    ("standard", "en", "Standard Shipping"),
    ("express", "en", "Express Shipping"),
    ("pickup", "en", "Self Pickup"),
    ("assembly", "en", "Delivery with Assembly"),
])
def test_shipping_method_labels(method, language, expected):
    assert expected in render_order_confirmation(confirmation(shipping_method=method, language=language))
    assert expected in render_shipping_notification(shipping(shipping_method=method, language=language))


def test_german_shipping_notification():
    html = render_shipping_notification(shipping())

    assert "Versandbestätigung" in html
    assert "ORD-TEST-123" in html
    assert "Max Mustermann" in html
    assert "DHL123456789" in html
    assert "15.01.2026" in html
    assert "Voraussichtliche Lieferung" in html
    assert "Gute Nachrichten" in html
    assert "Sendung verfolgen" in html


def test_english_shipping_notification():
    html = render_shipping_notification(shipping(
        customer_name="John Doe",
        tracking_number="DPD987654321",
        carrier="DPD",
        estimated_delivery=None,
        language="en",
    ))

    assert "Shipping Confirmation" in html
    assert "John Doe" in html
    assert "DPD987654321" in html
    assert "Good news" in html
    assert "Track Shipment" in html


def test_shipping_notification_links_tracking_page():
    html = render_shipping_notification(shipping(tracking_number="POST123ABC", carrier="Austrian Post"))

    assert 'href="https://www.post.at' in html
    assert "POST123ABC" in html


@pytest.mark.parametrize("language, label", [
    ("de", "Voraussichtliche Lieferung"),
    ("en", "Estimated Delivery"),
])
def test_estimated_delivery_omitted_when_missing(language, label):
    assert label not in render_shipping_notification(shipping(estimated_delivery=None, language=language))
    assert label not in render_shipping_notification(shipping(estimated_delivery="", language=language))


def test_shipping_notification_includes_delivery_tips():
    html = render_shipping_notification(shipping())

    assert "Informationen zur Zustellung" in html
    assert "jemand zu Hause ist" in html
    assert "Benachrichtigung hinterlassen" in html
    assert "Bordsteinkante" in html


@pytest.mark.parametrize("language", ["de", "en"])
def test_rendering_is_deterministic(language):
    assert render_order_confirmation(confirmation(language=language)) == \
        render_order_confirmation(confirmation(language=language))
    assert render_shipping_notification(shipping(language=language)) == \
        render_shipping_notification(shipping(language=language))


def test_unsupported_language_fails_fast():
    with pytest.raises(ValueError):
        render_order_confirmation(confirmation(language="fr"))
    with pytest.raises(ValueError):
        render_shipping_notification(shipping(language="fr"))
    with pytest.raises(ValueError):
        order_confirmation_subject("ORD-1", "fr")


def test_subjects():
    assert order_confirmation_subject("ORD-1", "de") == "Bestellbestätigung - ORD-1"
    assert order_confirmation_subject("ORD-1", "en") == "Order Confirmation - ORD-1"
    assert shipping_notification_subject("ORD-1", "de") == "Versandbestätigung - ORD-1"
    assert shipping_notification_subject("ORD-1", "en") == "Shipping Confirmation - ORD-1"
