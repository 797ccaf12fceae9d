"""
Sandbox payment gateway.

Simulates a payment provider in-process: no network, deterministic outcomes
decided purely from the request, and an artificial delay on every call to
mimic provider latency. Useful for local development, demos and tests.
"""

import asyncio
import calendar
import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal

from .base import BasePaymentGateway
from ..types import (
    PaymentMethodResult,
    PaymentResult,
    RefundResult,
    SubscriptionResult,
    TransactionDetails,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_LATENCY = 0.5

# Payments succeed for amounts strictly between zero and this limit
MAX_PAYMENT_AMOUNT = Decimal('1000000')


def add_months(value: datetime, months: int) -> datetime:
    """Shift a datetime by whole calendar months, clamping the day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


class SandboxGateway(BasePaymentGateway):
    """
    Simulated gateway.

    Customer and plan management are not available in the sandbox.
    """

    name = 'sandbox'
    unsupported_operations = frozenset({
        'create_customer',
        'get_customer',
        'update_customer',
        'create_plan',
    })

    def __init__(self, latency: float = DEFAULT_LATENCY):
        """
        Args:
            latency: Seconds to sleep on every call
        """
        self.latency = latency

    async def _simulate_latency(self):
        await asyncio.sleep(self.latency)

    # Payments

    async def process_payment(self, request):
        await self._simulate_latency()

        success = Decimal(0) < request.amount < MAX_PAYMENT_AMOUNT

        if success:
            return PaymentResult(
                success=True,
                transaction_id=f"SANDBOX-{uuid.uuid4()}",
                status='Completed',
                amount_processed=request.amount,
                currency=request.currency
            )

        logger.debug("Sandbox declined payment", extra={'amount': str(request.amount)})
        return PaymentResult(
            success=False,
            status='Failed',
            amount_processed=Decimal('0'),
            currency=request.currency,
            error_message="Payment amount out of allowed range"
        )

    async def process_refund(self, request):
        await self._simulate_latency()

        success = request.amount > 0 and bool(request.transaction_id)

        if success:
            return RefundResult(
                success=True,
                refund_id=f"SANDBOX-REFUND-{uuid.uuid4()}",
                refunded_amount=request.amount
            )

        return RefundResult(
            success=False,
            refunded_amount=Decimal('0'),
            error_message="Invalid refund request"
        )

    async def get_transaction_details(self, transaction_id):
        """
        Return an illustrative transaction record.

        The sandbox keeps no history, so this is a fixed stand-in built around
        the requested ID, not the outcome of a real lookup.
        """
        await self._simulate_latency()

        return TransactionDetails(
            transaction_id=transaction_id,
            amount=Decimal('100.00'),
            currency='USD',
            status='succeeded',
            timestamp=utcnow() - timedelta(minutes=5),
            payment_method_type='card',
            customer_name='John Doe',
            customer_email='john.doe@example.com',
            description='Sandbox transaction'
        )

    # Subscription Management

    async def create_subscription(self, request):
        await self._simulate_latency()

        success = request.amount > 0 and bool(request.customer_id)
        start_date = utcnow()

        if not success:
            return SubscriptionResult(
                success=False,
                status='failed',
                start_date=start_date,
                error_message="Invalid subscription request"
            )

        return SubscriptionResult(
            success=True,
            subscription_id=f"SANDBOX-SUB-{uuid.uuid4()}",
            status='active',
            start_date=start_date,
            end_date=add_months(start_date, request.interval_count)
        )

    async def cancel_subscription(self, subscription_id):
        await self._simulate_latency()

        now = utcnow()

        if not subscription_id:
            return SubscriptionResult(
                success=False,
                subscription_id=subscription_id,
                status='failed',
                error_message="Invalid subscription ID"
            )

        return SubscriptionResult(
            success=True,
            subscription_id=subscription_id,
            status='cancelled',
            # Pretend it started a month ago
            start_date=add_months(now, -1),
            end_date=now
        )

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
        await self._simulate_latency()

        return PaymentMethodResult(
            success=True,
            payment_method_id=f"pm_sandbox_{uuid.uuid4()}",
            type=payment_method.type
        )
