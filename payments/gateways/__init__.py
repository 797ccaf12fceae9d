"""
Payment gateway abstraction layer.

Provides a unified interface for interacting with different payment providers.
"""

from .base import BasePaymentGateway
from .sandbox_gateway import SandboxGateway
from .stripe_gateway import StripeGateway
from .paypal_gateway import PayPalGateway
from .factory import (
    GatewayCredentials,
    GatewayType,
    create_gateway,
    get_gateway,
    get_payment_processor,
    list_available_gateways,
)

__all__ = [
    'BasePaymentGateway',
    'SandboxGateway',
    'StripeGateway',
    'PayPalGateway',
    'GatewayCredentials',
    'GatewayType',
    'create_gateway',
    'get_gateway',
    'get_payment_processor',
    'list_available_gateways',
]
