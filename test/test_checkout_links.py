from decimal import Decimal

import pytest

from classifieds.services import checkout_links
from classifieds.services.checkout_links import (
    CheckoutLinkError,
    create_payment_link,
    parse_payment_link_response,
)


def test_url_is_taken_from_a_successful_response():
    assert parse_payment_link_response(200, {"id": "pl_1", "url": "https://pay/1"}) == "https://pay/1"
    assert parse_payment_link_response(200, {"shortUrl": "https://s/1"}) == "https://s/1"


def test_provider_error_description_is_surfaced():
    with pytest.raises(CheckoutLinkError) as exc_info:
        parse_payment_link_response(
            400, {"errors": [{"code": "invalid_value", "description": "O valor deve ser maior que 5"}]}
        )
    assert exc_info.value.message == "O valor deve ser maior que 5"
    assert exc_info.value.status == 502


def test_provider_message_fallback():
    with pytest.raises(CheckoutLinkError) as exc_info:
        parse_payment_link_response(401, {"message": "Unauthorized"})
    assert exc_info.value.message == "Unauthorized"

    with pytest.raises(CheckoutLinkError) as exc_info:
        parse_payment_link_response(500, None)
    assert exc_info.value.message == "Failed to create payment link"


def test_success_without_link_is_an_error():
    with pytest.raises(CheckoutLinkError):
        parse_payment_link_response(200, {"id": "pl_1"})


async def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(checkout_links, "ASAAS_API_KEY", None)
    with pytest.raises(CheckoutLinkError) as exc_info:
        await create_payment_link("Plano", None, Decimal("10"))
    assert exc_info.value.status == 503


async def test_free_plan_has_no_link(monkeypatch):
    monkeypatch.setattr(checkout_links, "ASAAS_API_KEY", "key")
    with pytest.raises(CheckoutLinkError) as exc_info:
        await create_payment_link("Grátis", None, Decimal("0"))
    assert exc_info.value.status == 400
