"""
Tests for route compilation and matching
"""

import pytest

from x402_resource.exceptions import ConfigurationError
from x402_resource.http import PaymentOption, RouteConfig, RouteTable, normalize_path
from x402_resource.http.routes import ANY_VERB, compile_routes, parse_route_pattern


def _config(price="$0.01"):
    return RouteConfig(
        accepts=PaymentOption(scheme="exact", pay_to="0xPayTo", price=price, network="eip155:1")
    )


class TestParseRoutePattern:
    def test_verb_is_upper_cased(self):
        verb, regex = parse_route_pattern("get /weather")
        assert verb == "GET"
        assert regex.match("/weather")

    def test_pattern_without_verb_matches_any_verb(self):
        verb, _ = parse_route_pattern("/weather")
        assert verb == ANY_VERB

    def test_wildcard_spans_segments(self):
        _, regex = parse_route_pattern("GET /api/*")
        assert regex.match("/api/weather")
        assert regex.match("/api/weather/today")
        assert not regex.match("/other/weather")

    def test_parameter_matches_single_segment(self):
        _, regex = parse_route_pattern("/items/[id]")
        assert regex.match("/items/42")
        assert not regex.match("/items/42/reviews")
        assert not regex.match("/items/")

    def test_literal_characters_are_escaped(self):
        _, regex = parse_route_pattern("/data.json")
        assert regex.match("/data.json")
        assert not regex.match("/dataXjson")

    def test_match_is_case_insensitive(self):
        _, regex = parse_route_pattern("/Weather")
        assert regex.match("/WEATHER")


class TestNormalizePath:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("/weather?city=paris", "/weather"),
            ("/weather#today", "/weather"),
            ("/api//weather", "/api/weather"),
            ("/weather/", "/weather"),
            ("/weather///", "/weather"),
            ("\\api\\weather", "/api/weather"),
            ("/caf%C3%A9", "/café"),
            ("/", "/"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("/paid%3Fx", "/paid%3Fx"),
            ("/paid%253Fx", "/paid%253Fx"),
            ("/paid%2523", "/paid%2523"),
            ("/tag%23one", "/tag%23one"),
            ("/100%", "/100%25"),
        ],
    )
    def test_decoded_delimiters_stay_escaped(self, raw, expected):
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            "/a//b/?q=1",
            "/%2Fa%2F/",
            "\\x\\\\y\\",
            "/",
            "/paid%253Fx",
            "/paid%3Fx",
            "/paid%2523",
            "/100%",
            "/caf%C3%A9",
        ],
    )
    def test_idempotent(self, raw):
        once = normalize_path(raw)
        assert normalize_path(once) == once


class TestRouteTable:
    def test_first_declared_route_wins(self):
        premium = _config("$1")
        fallback = _config("$0.01")
        table = RouteTable({"GET /api/premium": premium, "GET /api/*": fallback})

        assert table.match("/api/premium", "GET").config is premium
        assert table.match("/api/basic", "GET").config is fallback

    def test_verb_must_match(self):
        table = RouteTable({"GET /api/*": _config()})
        assert table.match("/api/weather", "POST") is None
        assert table.match("/api/weather", "get") is not None

    def test_request_path_is_normalized(self):
        table = RouteTable({"GET /weather": _config()})
        assert table.match("/weather/?units=metric", "GET") is not None
        assert table.match("//weather", "GET") is not None

    def test_single_config_protects_every_path(self):
        table = RouteTable(_config())
        assert table.match("/anything/at/all", "DELETE") is not None

    def test_single_config_as_mapping(self):
        table = RouteTable(
            {
                "accepts": {
                    "scheme": "exact",
                    "payTo": "0xPayTo",
                    "price": "$0.01",
                    "network": "eip155:1",
                }
            }
        )
        assert len(table.routes) == 1
        assert table.routes[0].config.payment_options()[0].pay_to == "0xPayTo"

    def test_routes_preserve_declaration_order(self):
        table = RouteTable({"/b": _config(), "/a": _config(), "/c": _config()})
        assert [r.pattern for r in table.routes] == ["/b", "/a", "/c"]

    def test_no_match_returns_none(self):
        table = RouteTable({"GET /weather": _config()})
        assert table.match("/health", "GET") is None


class TestCompileRoutes:
    def test_route_without_options_rejected(self):
        with pytest.raises(ConfigurationError):
            compile_routes({"/weather": RouteConfig(accepts=[])})

    def test_invalid_route_value_rejected(self):
        with pytest.raises(ConfigurationError):
            compile_routes({"/weather": 42})

    def test_mapping_without_accepts_rejected(self):
        with pytest.raises(ConfigurationError):
            compile_routes({"/weather": {"description": "no options"}})

    def test_unsupported_routes_type_rejected(self):
        with pytest.raises(ConfigurationError):
            compile_routes(["GET /weather"])
