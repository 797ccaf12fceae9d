"""
Payment gateway factory.

Builds exactly one gateway from a gateway type plus provider credentials, and
rejects missing credentials at construction time, before any call can reach a
provider. ``get_gateway`` does the same from the PAYMENTS Django setting.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from django.conf import settings

from .base import BasePaymentGateway
from .paypal_gateway import DEFAULT_TIMEOUT, PayPalGateway
from .sandbox_gateway import DEFAULT_LATENCY, SandboxGateway
from .stripe_gateway import StripeGateway
from ..exceptions import PaymentException, UNSUPPORTED_GATEWAY
from ..processor import PaymentProcessor


class GatewayType(str, Enum):
    SANDBOX = 'sandbox'
    STRIPE = 'stripe'
    PAYPAL = 'paypal'


@dataclass(frozen=True)
class GatewayCredentials:
    """
    Provider credentials.

    Attributes:
        stripe_api_key: Stripe secret key, required for STRIPE
        paypal_client_id: PayPal client ID, required for PAYPAL
        paypal_client_secret: PayPal secret, required for PAYPAL
        paypal_sandbox: Use PayPal's sandbox environment
    """
    stripe_api_key: Optional[str] = None
    paypal_client_id: Optional[str] = None
    paypal_client_secret: Optional[str] = None
    paypal_sandbox: bool = True


# Gateway registry - maps gateway names to their classes
GATEWAY_REGISTRY = {
    GatewayType.SANDBOX.value: SandboxGateway,
    GatewayType.STRIPE.value: StripeGateway,
    GatewayType.PAYPAL.value: PayPalGateway,
}


def _parse_gateway_type(gateway_type: Union[GatewayType, str]) -> GatewayType:
    if isinstance(gateway_type, GatewayType):
        return gateway_type

    name = str(gateway_type or '').lower().strip()
    try:
        return GatewayType(name)
    except ValueError:
        supported = ', '.join(GATEWAY_REGISTRY.keys())
        raise PaymentException.configuration(
            f"Unsupported payment gateway: {name}. Supported gateways: {supported}",
            error_code=UNSUPPORTED_GATEWAY
        ) from None


def create_gateway(
    gateway_type: Union[GatewayType, str],
    credentials: Optional[GatewayCredentials] = None,
    sandbox_latency: Optional[float] = None,
    timeout: Optional[float] = None
) -> BasePaymentGateway:
    """
    Create a payment gateway instance.

    Args:
        gateway_type: GatewayType or its name ('sandbox', 'stripe', 'paypal')
        credentials: Provider credentials for the selected type
        sandbox_latency: Simulated delay for the sandbox gateway, in seconds
        timeout: HTTP timeout for the PayPal gateway, in seconds

    Returns:
        Configured payment gateway instance

    Raises:
        PaymentException: CONFIGURATION kind, if the type is unknown or its
            credentials are missing

    Example:
        >>> gateway = create_gateway(GatewayType.STRIPE, GatewayCredentials(stripe_api_key='sk_test_...'))
    """
    gateway_type = _parse_gateway_type(gateway_type)
    credentials = credentials or GatewayCredentials()

    if gateway_type == GatewayType.SANDBOX:
        return SandboxGateway(
            latency=DEFAULT_LATENCY if sandbox_latency is None else sandbox_latency
        )

    if gateway_type == GatewayType.STRIPE:
        if not credentials.stripe_api_key:
            raise PaymentException.configuration("Stripe API key is required for Stripe gateway")
        return StripeGateway(api_key=credentials.stripe_api_key)

    if not credentials.paypal_client_id or not credentials.paypal_client_secret:
        raise PaymentException.configuration(
            "PayPal Client ID and Client Secret are required for PayPal gateway"
        )
    return PayPalGateway(
        client_id=credentials.paypal_client_id,
        client_secret=credentials.paypal_client_secret,
        sandbox=credentials.paypal_sandbox,
        timeout=DEFAULT_TIMEOUT if timeout is None else timeout
    )


def _payments_settings() -> dict:
    return getattr(settings, 'PAYMENTS', None) or {}


def get_gateway(gateway_name: Optional[str] = None) -> BasePaymentGateway:
    """
    Get a payment gateway configured from Django settings.

    Args:
        gateway_name: Name of the gateway ('sandbox', 'stripe', 'paypal').
                     If None, uses PAYMENTS['GATEWAY'] from settings

    Returns:
        Configured payment gateway instance

    Raises:
        PaymentException: If gateway is not supported or configuration is missing
    """
    config = _payments_settings()

    if gateway_name is None:
        gateway_name = config.get('GATEWAY', GatewayType.SANDBOX.value)

    credentials = GatewayCredentials(
        stripe_api_key=config.get('STRIPE_API_KEY'),
        paypal_client_id=config.get('PAYPAL_CLIENT_ID'),
        paypal_client_secret=config.get('PAYPAL_CLIENT_SECRET'),
        paypal_sandbox=config.get('PAYPAL_SANDBOX', True)
    )

    return create_gateway(
        gateway_name,
        credentials,
        sandbox_latency=config.get('SANDBOX_LATENCY'),
        timeout=config.get('TIMEOUT')
    )


def get_payment_processor(gateway_name: Optional[str] = None) -> PaymentProcessor:
    """
    Get a PaymentProcessor bound to the gateway configured in settings.

    Example:
        >>> processor = get_payment_processor('sandbox')
        >>> result = await processor.process_payment(request)
    """
    gateway = get_gateway(gateway_name)
    timeout = _payments_settings().get('TIMEOUT')
    if timeout is None:
        return PaymentProcessor(gateway)
    return PaymentProcessor(gateway, timeout=timeout)


def list_available_gateways():
    """
    List all registered payment gateways.

    Returns:
        List of gateway names
    """
    return list(GATEWAY_REGISTRY.keys())
