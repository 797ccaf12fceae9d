"""
Tests for PayPal payment gateway implementation.

HTTP traffic is served by httpx.MockTransport, so no request leaves the
process. Each handler records the requests it saw for later assertions.
"""

import json

import httpx
import pytest
from decimal import Decimal

from payments.exceptions import ErrorKind, PaymentException
from payments.gateways.paypal_gateway import (
    LIVE_BASE_URL,
    SANDBOX_BASE_URL,
    PayPalGateway,
    parse_paypal_time,
)
from payments.types import (
    Customer,
    CustomerRequest,
    PaymentMethodInfo,
    PaymentRequest,
    PlanRequest,
    RefundRequest,
    SubscriptionRequest,
)


class PayPalStub:
    """Routes requests to canned responses and records what was sent."""

    def __init__(self, routes=None, token_response=None):
        self.routes = routes or {}
        self.token_response = token_response or httpx.Response(
            200, json={'access_token': 'token-1', 'token_type': 'Bearer'}
        )
        self.requests = []

    @staticmethod
    def _fresh(response: httpx.Response) -> httpx.Response:
        # A Response is bound to one request, so hand out copies
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == '/v1/oauth2/token':
            return self._fresh(self.token_response)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={'name': 'RESOURCE_NOT_FOUND', 'message': 'Not found'})
        if isinstance(route, Exception):
            raise route
        return self._fresh(route)

    def api_requests(self):
        return [r for r in self.requests if r.url.path != '/v1/oauth2/token']


def make_gateway(stub):
    client = httpx.AsyncClient(base_url=SANDBOX_BASE_URL, transport=httpx.MockTransport(stub))
    return PayPalGateway(
        client_id='client-id',
        client_secret='client-secret',
        sandbox=True,
        http_client=client
    )


@pytest.fixture
def payment_request():
    return PaymentRequest(
        amount=Decimal('10.5'),
        currency='usd',
        payment_method=PaymentMethodInfo(type='paypal'),
        customer=Customer(name='Test User', email='test@example.com'),
        description='x' * 200
    )


class TestConstruction:

    def test_missing_credentials(self):
        with pytest.raises(PaymentException) as exc_info:
            PayPalGateway(client_id='', client_secret='secret')

        assert exc_info.value.kind == ErrorKind.CONFIGURATION

    @pytest.mark.asyncio
    async def test_environment_selects_base_url(self):
        sandbox = PayPalGateway('id', 'secret', sandbox=True)
        live = PayPalGateway('id', 'secret', sandbox=False)

        assert sandbox.base_url == SANDBOX_BASE_URL
        assert live.base_url == LIVE_BASE_URL

        await sandbox.aclose()
        await live.aclose()


class TestProcessPayment:
    """Tests for payments through Orders v2"""

    @pytest.mark.asyncio
    async def test_payment_success(self, payment_request):
        """Test order is created with string amount and a per-request token"""
        stub = PayPalStub({
            ('POST', '/v2/checkout/orders'): httpx.Response(201, json={'id': 'ORDER-1', 'status': 'CREATED'}),
        })
        gateway = make_gateway(stub)

        result = await gateway.process_payment(payment_request)

        # Assert
        assert result.success is True
        assert result.transaction_id == 'ORDER-1'
        assert result.status == 'CREATED'
        assert result.amount_processed == Decimal('10.5')

        token_request = stub.requests[0]
        assert token_request.url.path == '/v1/oauth2/token'
        assert token_request.headers['Authorization'].startswith('Basic ')

        order_request = stub.api_requests()[0]
        assert order_request.headers['Authorization'] == 'Bearer token-1'
        body = json.loads(order_request.content)
        assert body['intent'] == 'CAPTURE'
        unit = body['purchase_units'][0]
        assert unit['amount'] == {'currency_code': 'USD', 'value': '10.50'}
        assert len(unit['description']) == 127

        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_token_is_not_stored_on_shared_client(self, payment_request):
        stub = PayPalStub({
            ('POST', '/v2/checkout/orders'): httpx.Response(201, json={'id': 'ORDER-1', 'status': 'CREATED'}),
        })
        gateway = make_gateway(stub)

        await gateway.process_payment(payment_request)

        assert 'Authorization' not in gateway.http_client.headers
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_each_call_fetches_its_own_token(self, payment_request):
        stub = PayPalStub({
            ('POST', '/v2/checkout/orders'): httpx.Response(201, json={'id': 'ORDER-1', 'status': 'CREATED'}),
        })
        gateway = make_gateway(stub)

        await gateway.process_payment(payment_request)
        await gateway.process_payment(payment_request)

        token_calls = [r for r in stub.requests if r.url.path == '/v1/oauth2/token']
        assert len(token_calls) == 2
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_client_error_is_provider_error(self, payment_request):
        """Test a 4xx response raises with PayPal's error name"""
        stub = PayPalStub({
            ('POST', '/v2/checkout/orders'): httpx.Response(422, json={
                'name': 'UNPROCESSABLE_ENTITY',
                'message': 'The requested action could not be performed.',
                'debug_id': 'abc123',
            }),
        })
        gateway = make_gateway(stub)

        with pytest.raises(PaymentException) as exc_info:
            await gateway.process_payment(payment_request)

        assert exc_info.value.error_code == 'UNPROCESSABLE_ENTITY'
        assert exc_info.value.kind == ErrorKind.PROVIDER
        assert exc_info.value.gateway_response['debug_id'] == 'abc123'
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_server_error_is_transport_error(self, payment_request):
        stub = PayPalStub({
            ('POST', '/v2/checkout/orders'): httpx.Response(503, text='Service Unavailable'),
        })
        gateway = make_gateway(stub)

        with pytest.raises(PaymentException) as exc_info:
            await gateway.process_payment(payment_request)

        assert exc_info.value.kind == ErrorKind.TRANSPORT
        assert exc_info.value.error_code == 'PAYPAL_ERROR'
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_authentication_failure(self, payment_request):
        stub = PayPalStub(token_response=httpx.Response(401, json={
            'error': 'invalid_client',
            'error_description': 'Client Authentication failed',
        }))
        gateway = make_gateway(stub)

        with pytest.raises(PaymentException) as exc_info:
            await gateway.process_payment(payment_request)

        assert exc_info.value.error_code == 'invalid_client'
        assert 'Client Authentication failed' in exc_info.value.message
        assert stub.api_requests() == []
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_network_error_is_wrapped(self, payment_request):
        stub = PayPalStub({
            ('POST', '/v2/checkout/orders'): httpx.ConnectError('connection refused'),
        })
        gateway = make_gateway(stub)

        with pytest.raises(PaymentException) as exc_info:
            await gateway.process_payment(payment_request)

        assert exc_info.value.kind == ErrorKind.TRANSPORT
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        await gateway.aclose()


class TestProcessRefund:

    @pytest.mark.asyncio
    async def test_refund_success(self):
        stub = PayPalStub({
            ('POST', '/v2/payments/captures/CAP-1/refund'): httpx.Response(201, json={
                'id': 'REF-1',
                'status': 'COMPLETED',
                'amount': {'currency_code': 'USD', 'value': '5.00'},
            }),
        })
        gateway = make_gateway(stub)

        result = await gateway.process_refund(RefundRequest(
            transaction_id='CAP-1',
            amount=Decimal('5'),
            currency='USD',
            reason='Damaged item'
        ))

        assert result.success is True
        assert result.refund_id == 'REF-1'
        assert result.refunded_amount == Decimal('5.00')

        body = json.loads(stub.api_requests()[0].content)
        assert body['amount']['value'] == '5.00'
        assert body['note_to_payer'] == 'Damaged item'
        await gateway.aclose()


class TestTransactionDetails:

    @pytest.mark.asyncio
    async def test_order_details(self):
        stub = PayPalStub({
            ('GET', '/v2/checkout/orders/ORDER-1'): httpx.Response(200, json={
                'id': 'ORDER-1',
                'status': 'COMPLETED',
                'create_time': '2024-05-01T10:00:00Z',
                'purchase_units': [{
                    'amount': {'currency_code': 'USD', 'value': '42.00'},
                    'description': 'Order #1',
                }],
                'payer': {
                    'name': {'given_name': 'Jane', 'surname': 'Doe'},
                    'email_address': 'jane@example.com',
                },
            }),
        })
        gateway = make_gateway(stub)

        details = await gateway.get_transaction_details('ORDER-1')

        assert details.transaction_id == 'ORDER-1'
        assert details.amount == Decimal('42.00')
        assert details.currency == 'USD'
        assert details.timestamp == parse_paypal_time('2024-05-01T10:00:00Z')
        assert details.payment_method_type == 'paypal'
        assert details.customer_name == 'Jane Doe'
        assert details.customer_email == 'jane@example.com'
        assert details.description == 'Order #1'
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_unknown_order(self):
        gateway = make_gateway(PayPalStub())

        with pytest.raises(PaymentException) as exc_info:
            await gateway.get_transaction_details('ORDER-missing')

        assert exc_info.value.error_code == 'RESOURCE_NOT_FOUND'
        assert exc_info.value.kind == ErrorKind.PROVIDER
        await gateway.aclose()


class TestSubscriptionManagement:

    @pytest.mark.asyncio
    async def test_create_subscription(self):
        stub = PayPalStub({
            ('POST', '/v1/billing/subscriptions'): httpx.Response(201, json={
                'id': 'I-SUB1',
                'status': 'APPROVAL_PENDING',
                'start_time': '2024-05-01T10:00:00Z',
            }),
        })
        gateway = make_gateway(stub)

        result = await gateway.create_subscription(SubscriptionRequest(
            customer_id='cust-42',
            plan_id='P-PLAN1'
        ))

        assert result.success is True
        assert result.subscription_id == 'I-SUB1'
        assert result.status == 'APPROVAL_PENDING'
        assert result.end_date is None

        body = json.loads(stub.api_requests()[0].content)
        assert body['plan_id'] == 'P-PLAN1'
        assert body['custom_id'] == 'cust-42'
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_cancel_subscription(self):
        stub = PayPalStub({
            ('POST', '/v1/billing/subscriptions/I-SUB1/cancel'): httpx.Response(204),
        })
        gateway = make_gateway(stub)

        result = await gateway.cancel_subscription('I-SUB1')

        assert result.success is True
        assert result.status == 'cancelled'
        assert result.end_date is not None
        await gateway.aclose()


class TestUnsupportedOperations:

    @pytest.mark.asyncio
    @pytest.mark.parametrize('operation, args', [
        ('create_customer', (CustomerRequest(name='A', email='a@example.com'),)),
        ('get_customer', ('cust-1',)),
        ('update_customer', ('cust-1', CustomerRequest(name='A', email='a@example.com'))),
        ('create_plan', (PlanRequest(name='Pro', amount=Decimal('10'), currency='usd'),)),
        ('add_payment_method_to_customer', ('cust-1', PaymentMethodInfo(type='card', details='tok'))),
    ])
    async def test_raises_capability_gap_without_http(self, operation, args):
        stub = PayPalStub()
        gateway = make_gateway(stub)

        with pytest.raises(PaymentException) as exc_info:
            await getattr(gateway, operation)(*args)

        assert exc_info.value.is_capability_gap
        assert stub.requests == []
        await gateway.aclose()
