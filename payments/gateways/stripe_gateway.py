"""
Stripe payment gateway implementation.

Implements the BasePaymentGateway interface on top of the Stripe SDK's async
resource methods. The API key is passed with every request instead of being
set on the module-global ``stripe.api_key``, so gateways with different keys
can run side by side.

Failure channels:
    - Payments, refunds and transaction lookups raise PaymentException for
      any Stripe error, carrying Stripe's own error code.
    - Subscription, customer, plan and payment-method calls report Stripe
      errors as a result with ``success=False``.
    - Connection and API errors always raise, with kind TRANSPORT.
    - Anything that is not a Stripe error is raised as UNEXPECTED_ERROR.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import stripe

from .base import BasePaymentGateway
from ..exceptions import ErrorKind, PaymentException, UNEXPECTED_ERROR
from ..money import to_major_units, to_minor_units
from ..types import (
    CustomerResult,
    PaymentMethodResult,
    PaymentResult,
    PlanResult,
    RefundResult,
    SubscriptionResult,
    TransactionDetails,
)

logger = logging.getLogger(__name__)

REFUND_REASONS = ('requested_by_customer', 'duplicate', 'fraudulent')

# Stripe errors that mean the request never got a business answer
TRANSPORT_ERRORS = (stripe.APIConnectionError, stripe.APIError)


def refund_reason(reason: Optional[str]) -> str:
    """Map a free-form reason onto one Stripe accepts."""
    normalized = (reason or '').strip().lower()
    if normalized in REFUND_REASONS:
        return normalized
    return 'requested_by_customer'


def from_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Convert a Stripe unix timestamp to an aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _stripe_message(error: stripe.StripeError) -> str:
    return error.user_message or str(error)


class StripeGateway(BasePaymentGateway):
    """
    Stripe gateway implementation.

    Payments go through PaymentIntents confirmed server-side with redirect
    based payment methods disabled. Plans map to a Product plus a recurring
    Price.
    """

    name = 'stripe'

    def __init__(self, api_key: str):
        """
        Args:
            api_key: Stripe secret key (sk_test_... or sk_live_...)

        Raises:
            PaymentException: If the API key is empty
        """
        if not api_key or not api_key.strip():
            raise PaymentException.configuration("Stripe API key is required for Stripe gateway")
        self.api_key = api_key

    def _provider_exception(self, error: stripe.StripeError, action: str) -> PaymentException:
        logger.warning(
            "Stripe request failed",
            extra={'action': action, 'error_code': error.code, 'error': str(error)}
        )
        return PaymentException(
            message=f"Stripe error: {_stripe_message(error)}",
            error_code=error.code or UNEXPECTED_ERROR,
            kind=ErrorKind.TRANSPORT if isinstance(error, TRANSPORT_ERRORS) else ErrorKind.PROVIDER,
            gateway_response=error.json_body
        )

    def _unexpected_exception(self, error: Exception, action: str) -> PaymentException:
        logger.error(
            "Unexpected error calling Stripe",
            extra={'action': action, 'error': str(error)},
            exc_info=True
        )
        return PaymentException(
            message=f"Unexpected error: {error}",
            error_code=UNEXPECTED_ERROR,
            kind=ErrorKind.TRANSPORT
        )

    # Payments

    async def process_payment(self, request):
        currency = request.currency.lower()
        params = {
            'amount': to_minor_units(request.amount, currency),
            'currency': currency,
            'payment_method': request.payment_method.details,
            'confirm': True,
            # Confirm server-side only; never hand back a redirect
            'automatic_payment_methods': {
                'enabled': True,
                'allow_redirects': 'never',
            },
        }
        if request.customer.email:
            params['receipt_email'] = request.customer.email
        if request.description:
            params['description'] = request.description

        try:
            intent = await stripe.PaymentIntent.create_async(api_key=self.api_key, **params)
        except stripe.StripeError as e:
            raise self._provider_exception(e, 'payment') from e
        except Exception as e:
            raise self._unexpected_exception(e, 'payment') from e

        success = intent.status == 'succeeded'
        error_message = None
        if not success:
            last_error = getattr(intent, 'last_payment_error', None)
            error_message = (
                getattr(last_error, 'message', None)
                or f"Payment not completed (status: {intent.status})"
            )

        return PaymentResult(
            success=success,
            transaction_id=intent.id if success else None,
            status=intent.status,
            amount_processed=to_major_units(intent.amount, intent.currency),
            currency=intent.currency,
            error_message=error_message
        )

    async def process_refund(self, request):
        try:
            refund = await stripe.Refund.create_async(
                api_key=self.api_key,
                payment_intent=request.transaction_id,
                amount=to_minor_units(request.amount, request.currency),
                reason=refund_reason(request.reason)
            )
        except stripe.StripeError as e:
            raise self._provider_exception(e, 'refund') from e
        except Exception as e:
            raise self._unexpected_exception(e, 'refund') from e

        success = refund.status == 'succeeded'
        error_message = None
        if not success:
            error_message = getattr(refund, 'failure_reason', None) or f"Refund not completed (status: {refund.status})"

        return RefundResult(
            success=success,
            refund_id=refund.id,
            refunded_amount=to_major_units(refund.amount, refund.currency),
            error_message=error_message
        )

    async def get_transaction_details(self, transaction_id):
        try:
            intent = await stripe.PaymentIntent.retrieve_async(
                transaction_id,
                api_key=self.api_key,
                expand=['customer']
            )
        except stripe.StripeError as e:
            raise self._provider_exception(e, 'transaction lookup') from e
        except Exception as e:
            raise self._unexpected_exception(e, 'transaction lookup') from e

        # Customer stays a bare ID unless expanded and attached
        customer = getattr(intent, 'customer', None)
        if isinstance(customer, str):
            customer = None
        method_types = getattr(intent, 'payment_method_types', None) or []

        return TransactionDetails(
            transaction_id=intent.id,
            amount=to_major_units(intent.amount, intent.currency),
            currency=intent.currency,
            status=intent.status,
            timestamp=from_timestamp(intent.created),
            payment_method_type=method_types[0] if method_types else None,
            customer_name=getattr(customer, 'name', None),
            customer_email=getattr(customer, 'email', None),
            description=getattr(intent, 'description', None)
        )

    # Subscription Management

    async def create_subscription(self, request):
        try:
            subscription = await stripe.Subscription.create_async(
                api_key=self.api_key,
                customer=request.customer_id,
                items=[{'price': request.plan_id}]
            )
        except TRANSPORT_ERRORS as e:
            raise self._provider_exception(e, 'subscription creation') from e
        except stripe.StripeError as e:
            logger.warning(
                "Failed to create Stripe subscription",
                extra={'customer_id': request.customer_id, 'plan_id': request.plan_id, 'error': str(e)}
            )
            return SubscriptionResult(success=False, error_message=_stripe_message(e))
        except Exception as e:
            raise self._unexpected_exception(e, 'subscription creation') from e

        return SubscriptionResult(
            success=True,
            subscription_id=subscription.id,
            status=subscription.status,
            start_date=from_timestamp(getattr(subscription, 'start_date', None)),
            end_date=from_timestamp(getattr(subscription, 'ended_at', None))
        )

    async def cancel_subscription(self, subscription_id):
        try:
            subscription = await stripe.Subscription.cancel_async(
                subscription_id,
                api_key=self.api_key
            )
        except TRANSPORT_ERRORS as e:
            raise self._provider_exception(e, 'subscription cancellation') from e
        except stripe.StripeError as e:
            logger.warning(
                "Failed to cancel Stripe subscription",
                extra={'subscription_id': subscription_id, 'error': str(e)}
            )
            return SubscriptionResult(
                success=False,
                subscription_id=subscription_id,
                error_message=_stripe_message(e)
            )
        except Exception as e:
            raise self._unexpected_exception(e, 'subscription cancellation') from e

        return SubscriptionResult(
            success=True,
            subscription_id=subscription.id,
            status=subscription.status,
            start_date=from_timestamp(getattr(subscription, 'start_date', None)),
            end_date=from_timestamp(getattr(subscription, 'ended_at', None))
        )

    # Customer Management

    @staticmethod
    def _customer_result(customer) -> CustomerResult:
        if getattr(customer, 'deleted', None):
            return CustomerResult(
                success=False,
                customer_id=customer.id,
                error_message="Customer has been deleted"
            )
        return CustomerResult(
            success=True,
            customer_id=customer.id,
            name=getattr(customer, 'name', None),
            email=getattr(customer, 'email', None),
            description=getattr(customer, 'description', None)
        )

    async def create_customer(self, request):
        params = {'name': request.name, 'email': request.email}
        if request.description:
            params['description'] = request.description

        try:
            customer = await stripe.Customer.create_async(api_key=self.api_key, **params)
        except TRANSPORT_ERRORS as e:
            raise self._provider_exception(e, 'customer creation') from e
        except stripe.StripeError as e:
            logger.warning(
                "Failed to create Stripe customer",
                extra={'email': request.email, 'error': str(e)}
            )
            return CustomerResult(success=False, error_message=_stripe_message(e))
        except Exception as e:
            raise self._unexpected_exception(e, 'customer creation') from e

        return self._customer_result(customer)

    async def get_customer(self, customer_id):
        try:
            customer = await stripe.Customer.retrieve_async(customer_id, api_key=self.api_key)
        except TRANSPORT_ERRORS as e:
            raise self._provider_exception(e, 'customer lookup') from e
        except stripe.StripeError as e:
            logger.warning(
                "Stripe customer not found",
                extra={'customer_id': customer_id, 'error': str(e)}
            )
            return CustomerResult(success=False, customer_id=customer_id, error_message=_stripe_message(e))
        except Exception as e:
            raise self._unexpected_exception(e, 'customer lookup') from e

        return self._customer_result(customer)

    async def update_customer(self, customer_id, request):
        params = {'name': request.name, 'email': request.email}
        if request.description is not None:
            params['description'] = request.description

        try:
            customer = await stripe.Customer.modify_async(customer_id, api_key=self.api_key, **params)
        except TRANSPORT_ERRORS as e:
            raise self._provider_exception(e, 'customer update') from e
        except stripe.StripeError as e:
            logger.warning(
                "Failed to update Stripe customer",
                extra={'customer_id': customer_id, 'error': str(e)}
            )
            return CustomerResult(success=False, customer_id=customer_id, error_message=_stripe_message(e))
        except Exception as e:
            raise self._unexpected_exception(e, 'customer update') from e

        return self._customer_result(customer)

    # Plans

    async def create_plan(self, request):
        """
        Create a plan as a Stripe Product with one recurring Price.

        Prices are the current equivalent of Stripe's legacy Plans; the
        returned plan_id is the Price ID to use for subscriptions.
        """
        currency = request.currency.lower()
        product_params = {'name': request.name}
        if request.description:
            product_params['description'] = request.description

        try:
            product = await stripe.Product.create_async(api_key=self.api_key, **product_params)
            price = await stripe.Price.create_async(
                api_key=self.api_key,
                product=product.id,
                unit_amount=to_minor_units(request.amount, currency),
                currency=currency,
                recurring={
                    'interval': request.interval.lower(),
                    'interval_count': request.interval_count,
                }
            )
        except TRANSPORT_ERRORS as e:
            raise self._provider_exception(e, 'plan creation') from e
        except stripe.StripeError as e:
            logger.warning(
                "Failed to create Stripe plan",
                extra={'plan_name': request.name, 'error': str(e)}
            )
            return PlanResult(success=False, error_message=_stripe_message(e))
        except Exception as e:
            raise self._unexpected_exception(e, 'plan creation') from e

        recurring = getattr(price, 'recurring', None)

        return PlanResult(
            success=True,
            plan_id=price.id,
            product_id=product.id,
            name=getattr(product, 'name', None),
            description=getattr(product, 'description', None),
            amount=to_major_units(price.unit_amount, price.currency),
            currency=price.currency,
            interval=getattr(recurring, 'interval', None),
            interval_count=getattr(recurring, 'interval_count', None) or 0
        )

    # Payment Methods

    async def add_payment_method_to_customer(self, customer_id, payment_method):
        try:
            attached = await stripe.PaymentMethod.attach_async(
                payment_method.details,
                api_key=self.api_key,
                customer=customer_id
            )
            # Make it the default for future invoices
            await stripe.Customer.modify_async(
                customer_id,
                api_key=self.api_key,
                invoice_settings={'default_payment_method': attached.id}
            )
        except TRANSPORT_ERRORS as e:
            raise self._provider_exception(e, 'payment method attachment') from e
        except stripe.StripeError as e:
            logger.warning(
                "Failed to attach Stripe payment method",
                extra={'customer_id': customer_id, 'error': str(e)}
            )
            return PaymentMethodResult(success=False, error_message=_stripe_message(e))
        except Exception as e:
            raise self._unexpected_exception(e, 'payment method attachment') from e

        return PaymentMethodResult(
            success=True,
            payment_method_id=attached.id,
            type=attached.type
        )
