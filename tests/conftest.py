"""
Shared pytest fixtures for the CheckoutForge test suite.

Provides a seeded random source, sample checkout endpoints and a
configuration tuned for fast, reproducible runs.
"""

import random

import pytest

from checkoutforge.config import CheckoutForgeConfig
from checkoutforge.models import Endpoint, Parameter, ParameterLocation, ParameterType


@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def price_param():
    return Parameter(name="price", value=100, type=ParameterType.NUMBER)


@pytest.fixture
def coupon_param():
    return Parameter(name="coupon_code", value="WELCOME10", type=ParameterType.STRING)


@pytest.fixture
def checkout_endpoint(price_param):
    return Endpoint(
        url="https://shop.test/api/checkout",
        method="POST",
        headers={"X-Requested-With": "XMLHttpRequest"},
        parameters=[
            price_param,
            Parameter(name="sku", value="TSHIRT-01", type=ParameterType.STRING),
            Parameter(name="currency", value="USD", type=ParameterType.STRING, location=ParameterLocation.QUERY),
        ],
        endpoint_type="checkout",
    )


@pytest.fixture
def config():
    """Seeded configuration with the default search tuning."""
    cfg = CheckoutForgeConfig()
    cfg.evolution.seed = 42
    return cfg
