import json
import os
import re

import pytest

from storefront.errors import InvalidTransitionError
from storefront.lifecycle import (
    check_transition,
    customer_name_from_address,
    format_address,
    generate_order_number,
    resolve_language,
    split_line_items,
)
from storefront.models import Order, OrderStatus


def order(status, payment_status="completed"):
    return Order(order_number="ORD-1", status=status, payment_status=payment_status)


def test_order_number_format():
    numbers = {generate_order_number() for _ in range(50)}

    assert len(numbers) == 50
    for number in numbers:
        assert re.fullmatch(r"ORD-\d{13}-[A-Z0-9]{9}", number)


@pytest.mark.parametrize("current, new", [
    ("pending", OrderStatus.PROCESSING),
    ("pending", OrderStatus.CANCELLED),
    ("processing", OrderStatus.SHIPPED),
    ("processing", OrderStatus.CANCELLED),
    ("shipped", OrderStatus.DELIVERED),
])
def test_allowed_transitions(current, new):
    check_transition(order(current), new)


@pytest.mark.parametrize("current, new", [
    ("processing", OrderStatus.PENDING),
    ("pending", OrderStatus.SHIPPED),
    ("shipped", OrderStatus.CANCELLED),
    ("shipped", OrderStatus.PROCESSING),
    ("delivered", OrderStatus.CANCELLED),
    ("cancelled", OrderStatus.PROCESSING),
])
def test_rejected_transitions(current, new):
    with pytest.raises(InvalidTransitionError):
        check_transition(order(current), new)


@pytest.mark.parametrize("payment_status", ["pending", "failed", "refunded"])
def test_unpaid_orders_cannot_ship_or_deliver(payment_status):
    with pytest.raises(InvalidTransitionError):
        check_transition(order("processing", payment_status), OrderStatus.SHIPPED)
    with pytest.raises(InvalidTransitionError):
        check_transition(order("shipped", payment_status), OrderStatus.DELIVERED)


def test_unpaid_orders_can_be_cancelled():
    check_transition(order("processing", "failed"), OrderStatus.CANCELLED)


def test_split_line_items_separates_trailing_shipping():
    items, shipping_cost = split_line_items([
        {"description": "Eiche Esstisch", "quantity": 1, "price": {"unit_amount": 89900}},
        {"description": "Stuhl", "quantity": 4, "amount_total": 39600},
        {"description": "Express Versand (1-2 Werktage)", "quantity": 1, "price": {"unit_amount": 1990}},
    ])

    assert items == [
        {"product_name": "Eiche Esstisch", "price": 89900, "quantity": 1},
        {"product_name": "Stuhl", "price": 9900, "quantity": 4},
    ]
    assert shipping_cost == 1990


def test_split_line_items_without_shipping():
    items, shipping_cost = split_line_items([
        {"description": "Versandkarton Deko", "quantity": 1, "price": {"unit_amount": 500}},
        {"description": "Sofa", "quantity": 1, "price": {"unit_amount": 129900}},
    ])

    assert [item["product_name"] for item in items] == ["Versandkarton Deko", "Sofa"]
    assert shipping_cost == 0


def test_split_line_items_empty():
    assert split_line_items([]) == ([], 0)


@pytest.mark.parametrize("address, expected", [
    (json.dumps({"name": "Max Mustermann", "address": {"line1": "Musterstraße 1"}}), "Max Mustermann"),
    (json.dumps({"address": {"line1": "Erika Muster\nHauptstraße 1"}}), "Erika Muster"),
    (json.dumps({}), "Kunde"),
    (json.dumps(["not", "a", "dict"]), "Kunde"),
    ("Anna Berger\nRingstraße 5\n1010 Wien", "Anna Berger"),
    ("", "Kunde"),
    (None, "Kunde"),
])
def test_customer_name_from_address(address, expected):
    assert customer_name_from_address(address, "de") == expected


def test_customer_placeholder_follows_language():
    assert customer_name_from_address("{}", "en") == "Customer"


def test_format_address():
    assert format_address({
        "name": "Max Mustermann",
        "address": {"line1": "Musterstraße 123", "line2": None, "postal_code": "1010", "city": "Wien",
                    "country": "AT"},
    }) == "Max Mustermann\nMusterstraße 123\n1010 Wien\nAT"
    assert format_address({}) == ""


def test_resolve_language(mocker):
    mocker.patch.dict(os.environ, {"DEFAULT_LANGUAGE": "de"})

    assert resolve_language("en") == "en"
    assert resolve_language("fr") == "de"
    assert resolve_language(None) == "de"
