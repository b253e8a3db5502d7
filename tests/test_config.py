"""Tests for configuration loading and region resolution."""

import random
from datetime import date, timedelta

import pytest

from spapi_oauth.config import MARKETPLACE_IDS, RegionConfig
from spapi_oauth.demo_orders import DEMO_STATUSES, generate_demo_orders
from spapi_oauth.errors import ConfigurationError
from spapi_oauth.regions import marketplace_currency, resolve_base_url, resolve_marketplace_id

ENV = {
    "AMAZON_APP_ID": "amzn1.sp.solution.app",
    "AMAZON_CLIENT_ID": "client",
    "AMAZON_CLIENT_SECRET": "secret",
    "AMAZON_REDIRECT_URI": "https://example.com/amazon/callback",
}


class TestRegionConfig:
    def test_from_env_defaults_to_eu_production(self):
        config = RegionConfig.from_env(ENV)
        assert config.region == "eu"
        assert config.sandbox is False
        assert config.marketplace_id is None

    def test_from_env_reads_overrides(self):
        config = RegionConfig.from_env(
            {**ENV, "AMAZON_REGION": "NA", "AMAZON_SANDBOX": "true", "AMAZON_MARKETPLACE_ID": MARKETPLACE_IDS["CA"]}
        )
        assert config.region == "na"
        assert config.sandbox is True
        assert config.marketplace_id == MARKETPLACE_IDS["CA"]

    @pytest.mark.parametrize("missing", sorted(ENV))
    def test_missing_value_is_fatal(self, missing):
        env = {k: v for k, v in ENV.items() if k != missing}
        with pytest.raises(ConfigurationError, match="Missing SP-API configuration"):
            RegionConfig.from_env(env)

    def test_unknown_region(self):
        with pytest.raises(ConfigurationError, match="Unknown region"):
            RegionConfig.from_env({**ENV, "AMAZON_REGION": "sa"})

    def test_config_is_immutable(self):
        config = RegionConfig.from_env(ENV)
        with pytest.raises(AttributeError):
            config.region = "na"


class TestRegions:
    @pytest.mark.parametrize(
        "region, sandbox, expected",
        [
            ("na", False, "https://sellingpartnerapi-na.amazon.com"),
            ("eu", False, "https://sellingpartnerapi-eu.amazon.com"),
            ("fe", True, "https://sandbox.sellingpartnerapi-fe.amazon.com"),
            ("EU", True, "https://sandbox.sellingpartnerapi-eu.amazon.com"),
        ],
    )
    def test_resolve_base_url(self, region, sandbox, expected):
        assert resolve_base_url(region, sandbox) == expected

    def test_resolve_base_url_unknown_region(self):
        with pytest.raises(ConfigurationError):
            resolve_base_url("moon", False)

    def test_eu_defaults_to_india_marketplace(self):
        assert resolve_marketplace_id("eu") == "A21TJRUUN4KGV"

    def test_marketplace_override_wins(self):
        assert resolve_marketplace_id("eu", override=MARKETPLACE_IDS["DE"]) == MARKETPLACE_IDS["DE"]

    def test_marketplace_unknown_region(self):
        with pytest.raises(ConfigurationError):
            resolve_marketplace_id("xx")

    def test_marketplace_currency(self):
        assert marketplace_currency(MARKETPLACE_IDS["IN"]) == "INR"
        assert marketplace_currency("UNKNOWN") == "USD"


class TestDemoOrders:
    def test_bounded_and_labelled(self):
        today = date(2024, 6, 30)
        orders = generate_demo_orders(currency="INR", today=today, rng=random.Random(7))

        assert 5 <= len(orders) <= 29
        assert all(o.status in DEMO_STATUSES for o in orders)
        assert all(today - timedelta(days=30) < o.order_date <= today for o in orders)
        assert all(o.order_id.startswith("IN-") and len(o.order_id) == 12 for o in orders)
        assert all(o.amount.startswith("INR ") for o in orders)

    def test_sorted_newest_first(self):
        orders = generate_demo_orders(rng=random.Random(3))
        dates = [o.order_date for o in orders]
        assert dates == sorted(dates, reverse=True)
