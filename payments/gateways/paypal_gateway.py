"""
PayPal payment gateway implementation.

Talks to PayPal's REST API (Orders v2, Payments v2, Billing Subscriptions v1)
over a shared httpx.AsyncClient. Only payments, refunds, transaction lookups
and subscriptions are available; customer, plan and payment-method management
raise a capability-gap error.

Every operation fetches its own OAuth2 client-credentials token and sends it
on that request only; the shared client's headers are never modified, so
concurrent calls cannot see each other's credentials.

Every failure is raised as PaymentException. Unlike the Stripe gateway, this
gateway never returns a result with ``success=False``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from .base import BasePaymentGateway
from ..exceptions import ErrorKind, PaymentException
from ..money import format_amount, parse_amount
from ..types import (
    PaymentResult,
    RefundResult,
    SubscriptionResult,
    TransactionDetails,
    utcnow,
)

logger = logging.getLogger(__name__)

LIVE_BASE_URL = 'https://api-m.paypal.com'
SANDBOX_BASE_URL = 'https://api-m.sandbox.paypal.com'

DEFAULT_TIMEOUT = 30.0

PAYPAL_ERROR = 'PAYPAL_ERROR'

# PayPal caps purchase unit descriptions at 127 characters
MAX_DESCRIPTION_LENGTH = 127

CANCEL_REASON = 'Cancelled by merchant'


def parse_paypal_time(value: Optional[str]) -> Optional[datetime]:
    """Parse a PayPal RFC 3339 timestamp such as '2024-05-01T10:00:00Z'."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


class PayPalGateway(BasePaymentGateway):
    """
    PayPal gateway implementation.

    Payments are created as CAPTURE orders. The transaction ID returned by
    ``process_payment`` is the order ID; refunds expect a capture ID.
    """

    name = 'paypal'
    unsupported_operations = frozenset({
        'create_customer',
        'get_customer',
        'update_customer',
        'create_plan',
        'add_payment_method_to_customer',
    })

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        sandbox: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize PayPal gateway.

        Args:
            client_id: PayPal REST app client ID
            client_secret: PayPal REST app secret
            sandbox: Use the sandbox environment instead of live
            timeout: Per-request timeout in seconds
            http_client: Optional preconfigured client (must target the same base URL)

        Raises:
            PaymentException: If client ID or secret is empty
        """
        if not client_id or not client_secret:
            raise PaymentException.configuration(
                "PayPal Client ID and Client Secret are required for PayPal gateway"
            )

        self.client_id = client_id
        self.client_secret = client_secret
        self.sandbox = sandbox
        self.base_url = SANDBOX_BASE_URL if sandbox else LIVE_BASE_URL
        self.http_client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout)
        )

    async def aclose(self):
        """Release pooled connections."""
        await self.http_client.aclose()

    # HTTP plumbing

    @staticmethod
    def _response_body(response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            return {'raw': response.text}
        return body if isinstance(body, dict) else {'raw': body}

    def _response_exception(self, response: httpx.Response, action: str) -> PaymentException:
        """Turn a non-2xx PayPal response into a PaymentException."""
        body = self._response_body(response)
        message = body.get('message') or body.get('error_description') or f"HTTP {response.status_code}"
        error_code = body.get('name') or body.get('error') or PAYPAL_ERROR

        logger.warning(
            "PayPal request failed",
            extra={
                'action': action,
                'status_code': response.status_code,
                'error_code': error_code,
                'debug_id': body.get('debug_id'),
            }
        )
        return PaymentException(
            message=f"PayPal {action} failed: {message}",
            error_code=error_code,
            kind=ErrorKind.TRANSPORT if response.status_code >= 500 else ErrorKind.PROVIDER,
            gateway_response=body
        )

    def _transport_exception(self, error: Exception, action: str) -> PaymentException:
        logger.error(
            "Error calling PayPal",
            extra={'action': action, 'error': str(error)},
            exc_info=True
        )
        return PaymentException(
            message=f"An error occurred while processing the PayPal {action}",
            error_code=PAYPAL_ERROR,
            kind=ErrorKind.TRANSPORT
        )

    async def _get_access_token(self) -> str:
        """Fetch a fresh client-credentials access token."""
        response = await self.http_client.post(
            '/v1/oauth2/token',
            data={'grant_type': 'client_credentials'},
            auth=(self.client_id, self.client_secret),
            headers={'Accept': 'application/json'}
        )
        if response.is_error:
            raise self._response_exception(response, 'authentication')
        return response.json()['access_token']

    async def _request(self, method: str, path: str, action: str, json: Optional[Dict] = None) -> httpx.Response:
        """Send an authenticated request and fail on any non-2xx response."""
        access_token = await self._get_access_token()
        response = await self.http_client.request(
            method,
            path,
            json=json,
            headers={
                'Authorization': f'Bearer {access_token}',
                'Accept': 'application/json',
            }
        )
        if response.is_error:
            raise self._response_exception(response, action)
        return response

    # Payments

    async def process_payment(self, request):
        """
        Create a CAPTURE order.

        The order still needs payer approval and a capture before money
        moves, so the returned transaction_id is the order ID. It cannot be
        passed to ``process_refund``, which needs the capture ID issued later.
        """
        purchase_unit = {
            'amount': {
                'currency_code': request.currency.upper(),
                'value': format_amount(request.amount, request.currency),
            }
        }
        if request.description:
            purchase_unit['description'] = request.description[:MAX_DESCRIPTION_LENGTH]

        try:
            response = await self._request(
                'POST',
                '/v2/checkout/orders',
                'payment',
                json={'intent': 'CAPTURE', 'purchase_units': [purchase_unit]}
            )
            order = response.json()

            return PaymentResult(
                success=True,
                transaction_id=order['id'],
                status=order['status'],
                amount_processed=request.amount,
                currency=request.currency
            )
        except PaymentException:
            raise
        except Exception as e:
            raise self._transport_exception(e, 'payment') from e

    async def process_refund(self, request):
        payload = {
            'amount': {
                'currency_code': request.currency.upper(),
                'value': format_amount(request.amount, request.currency),
            }
        }
        if request.reason:
            payload['note_to_payer'] = request.reason

        try:
            response = await self._request(
                'POST',
                f'/v2/payments/captures/{request.transaction_id}/refund',
                'refund',
                json=payload
            )
            refund = response.json()

            amount = (refund.get('amount') or {}).get('value')
            return RefundResult(
                success=True,
                refund_id=refund['id'],
                refunded_amount=parse_amount(amount) if amount else request.amount
            )
        except PaymentException:
            raise
        except Exception as e:
            raise self._transport_exception(e, 'refund') from e

    async def get_transaction_details(self, transaction_id):
        try:
            response = await self._request('GET', f'/v2/checkout/orders/{transaction_id}', 'transaction lookup')
            order = response.json()

            purchase_unit = order['purchase_units'][0]
            amount = purchase_unit['amount']

            customer_name = None
            customer_email = None
            payer = order.get('payer')
            if payer:
                name = payer.get('name') or {}
                full_name = ' '.join(part for part in (name.get('given_name'), name.get('surname')) if part)
                customer_name = full_name or None
                customer_email = payer.get('email_address')

            return TransactionDetails(
                transaction_id=order['id'],
                amount=parse_amount(amount['value']),
                currency=amount['currency_code'],
                status=order['status'],
                timestamp=parse_paypal_time(order.get('create_time')),
                # The Orders API does not expose the funding instrument here
                payment_method_type='paypal',
                customer_name=customer_name,
                customer_email=customer_email,
                description=purchase_unit.get('description')
            )
        except PaymentException:
            raise
        except Exception as e:
            raise self._transport_exception(e, 'transaction lookup') from e

    # Subscription Management

    async def create_subscription(self, request):
        payload = {
            'plan_id': request.plan_id,
            # Merchant-side reference back to our customer
            'custom_id': request.customer_id,
            'application_context': {
                'user_action': 'SUBSCRIBE_NOW',
                'shipping_preference': 'NO_SHIPPING',
                'payment_method': {
                    'payer_selected': 'PAYPAL',
                    'payee_preferred': 'IMMEDIATE_PAYMENT_REQUIRED',
                },
            },
        }

        try:
            response = await self._request('POST', '/v1/billing/subscriptions', 'subscription creation', json=payload)
            subscription = response.json()

            return SubscriptionResult(
                success=True,
                subscription_id=subscription['id'],
                status=subscription['status'],
                start_date=parse_paypal_time(subscription.get('start_time')),
                # PayPal reports no end date for active subscriptions
                end_date=None
            )
        except PaymentException:
            raise
        except Exception as e:
            raise self._transport_exception(e, 'subscription creation') from e

    async def cancel_subscription(self, subscription_id):
        try:
            # Success is 204 No Content
            await self._request(
                'POST',
                f'/v1/billing/subscriptions/{subscription_id}/cancel',
                'subscription cancellation',
                json={'reason': CANCEL_REASON}
            )

            return SubscriptionResult(
                success=True,
                subscription_id=subscription_id,
                status='cancelled',
                end_date=utcnow()
            )
        except PaymentException:
            raise
        except Exception as e:
            raise self._transport_exception(e, 'subscription cancellation') from e

    # Customer Management

    async def create_customer(self, request):
        raise self.unsupported('create_customer')

    async def get_customer(self, customer_id):
        raise self.unsupported('get_customer')

    async def update_customer(self, customer_id, request):
        raise self.unsupported('update_customer')

    # Plans

    async def create_plan(self, request):
        raise self.unsupported('create_plan')

    # Payment Methods

    async def add_payment_method_to_customer(self, customer_id, payment_method):
        raise self.unsupported('add_payment_method_to_customer')
