"""
Run a walkthrough of the payment operations against one gateway.

Usage:
    python manage.py payments_demo --gateway sandbox
    python manage.py payments_demo --gateway stripe --payment-method pm_card_visa

Steps the gateway does not support are skipped. When customer or plan
creation is unavailable, the subscription step falls back to --customer-id
and --plan-id.
"""

import asyncio
from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError

from payments.exceptions import PaymentException
from payments.gateways import get_payment_processor, list_available_gateways
from payments.serializers import PaymentRequestSerializer
from payments.types import (
    CustomerRequest,
    PaymentMethodInfo,
    PlanRequest,
    RefundRequest,
    SubscriptionRequest,
)

PLAN_AMOUNT = Decimal('19.99')


class Command(BaseCommand):
    help = "Process a sample payment, refund it, manage a customer and plan, and run a subscription cycle"

    def add_arguments(self, parser):
        parser.add_argument(
            '--gateway',
            choices=list_available_gateways(),
            help="Gateway to use (defaults to PAYMENTS['GATEWAY'])"
        )
        parser.add_argument('--amount', default='10.00')
        parser.add_argument('--currency', default='usd')
        parser.add_argument('--payment-method', default='pm_card_visa', help="Tokenized payment method reference")
        parser.add_argument('--customer-id', default='cus_demo',
                            help="Customer ID for the subscription step when the gateway cannot create customers")
        parser.add_argument('--plan-id', default='price_demo',
                            help="Plan/price ID for the subscription step when the gateway cannot create plans")
        parser.add_argument('--skip-subscription', action='store_true')

    def handle(self, *args, **options):
        try:
            amount = Decimal(options['amount'])
        except InvalidOperation:
            raise CommandError(f"Invalid amount: {options['amount']}")

        serializer = PaymentRequestSerializer(data={
            'amount': amount,
            'currency': options['currency'],
            'payment_method': {'type': 'card', 'details': options['payment_method']},
            'customer': {'name': 'Test User', 'email': 'test@example.com'},
            'description': 'Test payment',
        })
        if not serializer.is_valid():
            raise CommandError(f"Invalid payment request: {serializer.errors}")

        try:
            processor = get_payment_processor(options['gateway'])
        except PaymentException as e:
            raise CommandError(f"{e.message} ({e.error_code})")

        try:
            asyncio.run(self._run(processor, serializer.save(), options))
        except PaymentException as e:
            raise CommandError(f"{e.message} ({e.error_code})")

    async def _run(self, processor, payment_request, options):
        try:
            await self._walkthrough(processor, payment_request, options)
        finally:
            close = getattr(processor.gateway, 'aclose', None)
            if close is not None:
                await close()

    async def _walkthrough(self, processor, payment_request, options):
        payment = await self._payment_steps(processor, payment_request)
        if not payment.success:
            return

        customer_id = await self._customer_steps(processor, options)
        if customer_id is None:
            return

        plan_id = await self._plan_step(processor, payment.currency)
        if plan_id is None:
            plan_id = options['plan_id']

        if not options['skip_subscription']:
            await self._subscription_steps(processor, customer_id, plan_id, payment.currency)

    async def _payment_steps(self, processor, payment_request):
        self.stdout.write("Processing payment...")
        payment = await processor.process_payment(payment_request)
        self._show_result("Payment", payment.success, [
            ('Transaction ID', payment.transaction_id),
            ('Status', payment.status),
            ('Amount Processed', f"{payment.amount_processed} {payment.currency}"),
            ('Timestamp', payment.timestamp),
            ('Error', payment.error_message),
        ])
        if not payment.success:
            return payment

        self.stdout.write("\nRetrieving transaction details...")
        details = await processor.get_transaction_details(payment.transaction_id)
        self._show_fields([
            ('Transaction ID', details.transaction_id),
            ('Amount', f"{details.amount} {details.currency}"),
            ('Status', details.status),
            ('Timestamp', details.timestamp),
            ('Payment Method Type', details.payment_method_type),
            ('Customer Name', details.customer_name),
            ('Customer Email', details.customer_email),
            ('Description', details.description),
        ])

        self.stdout.write("\nProcessing refund...")
        refund = await processor.process_refund(RefundRequest(
            transaction_id=payment.transaction_id,
            amount=payment.amount_processed,
            currency=payment.currency,
            reason='requested_by_customer'
        ))
        self._show_result("Refund", refund.success, [
            ('Refund ID', refund.refund_id),
            ('Refunded Amount', refund.refunded_amount),
            ('Timestamp', refund.timestamp),
            ('Error', refund.error_message),
        ])
        return payment

    async def _customer_steps(self, processor, options):
        """
        Create, equip, fetch and update a customer.

        Returns the customer ID for the subscription step, or None if the
        customer could not be created.
        """
        gateway = processor.gateway
        if not gateway.supports('create_customer'):
            self._skip("Customer management", gateway)
            return options['customer_id']

        self.stdout.write("\nCreating customer...")
        created = await processor.create_customer(CustomerRequest(
            name='John Doe',
            email='john.doe@example.com',
            description='Test customer'
        ))
        self._show_customer("Customer creation", created)
        if not created.success:
            return None

        if gateway.supports('add_payment_method_to_customer'):
            self.stdout.write("\nAdding payment method to customer...")
            added = await processor.add_payment_method_to_customer(
                created.customer_id,
                PaymentMethodInfo(type='card', details=options['payment_method'])
            )
            self._show_result("Adding payment method", added.success, [
                ('Payment Method ID', added.payment_method_id),
                ('Type', added.type),
                ('Error', added.error_message),
            ])
        else:
            self._skip("Adding payment method", gateway)

        if gateway.supports('get_customer'):
            self.stdout.write("\nRetrieving customer...")
            self._show_customer("Customer retrieval", await processor.get_customer(created.customer_id))

        if gateway.supports('update_customer'):
            self.stdout.write("\nUpdating customer...")
            updated = await processor.update_customer(created.customer_id, CustomerRequest(
                name='John Updated Doe',
                email='john.updated@example.com',
                description='Updated test customer'
            ))
            self._show_customer("Customer update", updated)

        return created.customer_id

    async def _plan_step(self, processor, currency):
        gateway = processor.gateway
        if not gateway.supports('create_plan'):
            self._skip("Plan creation", gateway)
            return None

        self.stdout.write("\nCreating plan...")
        plan = await processor.create_plan(PlanRequest(
            name='Premium Plan',
            description='Monthly premium subscription',
            amount=PLAN_AMOUNT,
            currency=currency,
            interval='month',
            interval_count=1
        ))
        self._show_result("Plan creation", plan.success, [
            ('Plan ID', plan.plan_id),
            ('Product ID', plan.product_id),
            ('Name', plan.name),
            ('Description', plan.description),
            ('Amount', f"{plan.amount} {plan.currency}"),
            ('Interval', plan.interval),
            ('Interval Count', plan.interval_count),
            ('Error', plan.error_message),
        ])
        return plan.plan_id if plan.success else None

    async def _subscription_steps(self, processor, customer_id, plan_id, currency):
        self.stdout.write("\nCreating subscription...")
        subscription = await processor.create_subscription(SubscriptionRequest(
            customer_id=customer_id,
            plan_id=plan_id,
            amount=PLAN_AMOUNT,
            currency=currency,
            interval='month',
            interval_count=1
        ))
        self._show_result("Subscription", subscription.success, [
            ('Subscription ID', subscription.subscription_id),
            ('Status', subscription.status),
            ('Start Date', subscription.start_date),
            ('End Date', subscription.end_date),
            ('Error', subscription.error_message),
        ])

        if subscription.success:
            self.stdout.write("\nCancelling subscription...")
            cancelled = await processor.cancel_subscription(subscription.subscription_id)
            self._show_result("Cancellation", cancelled.success, [
                ('Subscription ID', cancelled.subscription_id),
                ('Status', cancelled.status),
                ('End Date', cancelled.end_date),
                ('Error', cancelled.error_message),
            ])

    def _show_customer(self, label, customer):
        self._show_result(label, customer.success, [
            ('Customer ID', customer.customer_id),
            ('Name', customer.name),
            ('Email', customer.email),
            ('Description', customer.description),
            ('Error', customer.error_message),
        ])

    def _skip(self, label, gateway):
        self.stdout.write(self.style.WARNING(f"\n{label} skipped: not supported by the {gateway.name} gateway"))

    def _show_result(self, label, success, fields):
        if success:
            self.stdout.write(self.style.SUCCESS(f"{label} succeeded"))
        else:
            self.stdout.write(self.style.ERROR(f"{label} failed"))
        self._show_fields(fields)

    def _show_fields(self, fields):
        for name, value in fields:
            if value is not None:
                self.stdout.write(f"  {name}: {value}")
