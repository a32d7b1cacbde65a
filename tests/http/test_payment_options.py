"""
Tests for payment option normalization and dynamic field resolution
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from x402_resource.http import PaymentOption, RouteConfig, resolve_payment_options
from x402_resource.types import AssetAmount


@pytest.mark.anyio
async def test_static_option_resolves_unchanged(make_context, pay_to, network):
    config = RouteConfig(
        accepts=PaymentOption(
            scheme="exact",
            pay_to=pay_to,
            price="$0.01",
            network=network,
            max_timeout_seconds=60,
            extra={"memo": "weather"},
        )
    )

    [resolved] = await resolve_payment_options(config, make_context())

    assert resolved.scheme == "exact"
    assert resolved.pay_to == pay_to
    assert resolved.price == "$0.01"
    assert resolved.network == network
    assert resolved.max_timeout_seconds == 60
    assert resolved.extra == {"memo": "weather"}


@pytest.mark.anyio
async def test_dynamic_fields_called_once_with_context(make_context, network):
    """Sync and async callables are both evaluated exactly once per request"""
    pay_to = MagicMock(return_value="0xDynamicPayTo")
    price = AsyncMock(return_value="$0.05")
    config = RouteConfig(
        accepts=PaymentOption(scheme="exact", pay_to=pay_to, price=price, network=network)
    )
    context = make_context()

    [resolved] = await resolve_payment_options(config, context)

    assert resolved.pay_to == "0xDynamicPayTo"
    assert resolved.price == "$0.05"
    pay_to.assert_called_once_with(context)
    price.assert_awaited_once_with(context)


@pytest.mark.anyio
async def test_dynamic_price_can_return_asset_amount(make_context, network):
    asset_amount = AssetAmount(amount="123", asset="0xToken")

    async def price(context):
        return asset_amount

    config = RouteConfig(
        accepts=PaymentOption(scheme="exact", pay_to="0xPayTo", price=price, network=network)
    )

    [resolved] = await resolve_payment_options(config, make_context())
    assert resolved.price is asset_amount


@pytest.mark.anyio
async def test_options_resolved_in_declaration_order(make_context):
    calls = []

    def pay_to_for(name):
        def _resolve(context):
            calls.append(name)
            return f"0x{name}"

        return _resolve

    config = RouteConfig(
        accepts=[
            PaymentOption(scheme="exact", pay_to=pay_to_for("a"), price=1, network="eip155:1"),
            PaymentOption(scheme="exact", pay_to=pay_to_for("b"), price=2, network="eip155:8453"),
        ]
    )

    resolved = await resolve_payment_options(config, make_context())

    assert calls == ["a", "b"]
    assert [o.network for o in resolved] == ["eip155:1", "eip155:8453"]


@pytest.mark.anyio
async def test_resolved_extra_is_a_copy(make_context):
    extra = {"memo": "original"}
    config = RouteConfig(
        accepts=PaymentOption(
            scheme="exact", pay_to="0xPayTo", price=1, network="eip155:1", extra=extra
        )
    )

    [resolved] = await resolve_payment_options(config, make_context())
    resolved.extra["memo"] = "changed"

    assert extra == {"memo": "original"}


def test_payment_option_from_camel_case_dict():
    option = PaymentOption.from_dict(
        {
            "scheme": "exact",
            "payTo": "0xPayTo",
            "price": "$0.01",
            "network": "eip155:1",
            "maxTimeoutSeconds": 120,
        }
    )
    assert option.pay_to == "0xPayTo"
    assert option.max_timeout_seconds == 120


def test_payment_option_from_snake_case_dict():
    option = PaymentOption.from_dict(
        {"scheme": "exact", "pay_to": "0xPayTo", "price": 1, "network": "eip155:1"}
    )
    assert option.pay_to == "0xPayTo"
    assert option.max_timeout_seconds is None


def test_route_config_single_option_becomes_list():
    option = PaymentOption(scheme="exact", pay_to="0xPayTo", price=1, network="eip155:1")
    assert RouteConfig(accepts=option).payment_options() == [option]


def test_route_config_from_dict_requires_accepts():
    with pytest.raises(ValueError):
        RouteConfig.from_dict({"description": "missing"})


def test_route_config_from_dict_reads_camel_case():
    config = RouteConfig.from_dict(
        {
            "accepts": [{"scheme": "exact", "payTo": "0x1", "price": 1, "network": "eip155:1"}],
            "mimeType": "image/png",
            "customPaywallHtml": "<html>pay</html>",
        }
    )
    assert config.mime_type == "image/png"
    assert config.custom_paywall_html == "<html>pay</html>"
    assert config.payment_options()[0].pay_to == "0x1"
