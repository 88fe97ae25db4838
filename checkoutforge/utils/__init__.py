"""Utility modules for CheckoutForge."""

from checkoutforge.utils.http import HTTPClient, TransportError
from checkoutforge.utils.encoding import Encoder

__all__ = ["HTTPClient", "TransportError", "Encoder"]
