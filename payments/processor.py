"""
Payment processor: the single entry point for payment operations.

PaymentProcessor validates payment requests, delegates every operation to the
configured gateway exactly once, logs the outcome and turns any exception into
a PaymentException. Results are returned exactly as the gateway produced them.

Logging:
    - INFO when an operation succeeds
    - WARNING when validation fails or the gateway reports success=False
    - ERROR when an exception escapes the gateway
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict

from .exceptions import ErrorKind, PaymentException, TIMEOUT, UNEXPECTED_ERROR
from .serializers import validate_payment_request

if TYPE_CHECKING:
    from .gateways.base import BasePaymentGateway

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class PaymentProcessor:
    """
    Facade over one payment gateway.

    Example:
        >>> processor = PaymentProcessor(SandboxGateway())
        >>> result = await processor.process_payment(request)
    """

    def __init__(self, gateway: 'BasePaymentGateway', timeout: float = DEFAULT_TIMEOUT):
        """
        Args:
            gateway: Gateway every operation is delegated to
            timeout: Upper bound in seconds for a single gateway call
        """
        self.gateway = gateway
        self.timeout = timeout

    async def _execute(self, action: str, log_extra: Dict[str, Any], method: Callable[..., Awaitable], *args):
        """Run one gateway call under the timeout and normalize its failures."""
        log_extra = {**log_extra, 'action': action, 'gateway': self.gateway.name}
        try:
            return await asyncio.wait_for(method(*args), timeout=self.timeout)
        except PaymentException as e:
            logger.error(
                "Payment gateway error",
                extra={**log_extra, 'error': e.message, 'error_code': e.error_code, 'error_kind': e.kind.value},
                exc_info=True
            )
            raise
        except asyncio.TimeoutError as e:
            logger.error(
                "Payment gateway call timed out",
                extra={**log_extra, 'timeout': self.timeout}
            )
            raise PaymentException(
                message=f"Timed out while {action}",
                error_code=TIMEOUT,
                kind=ErrorKind.TRANSPORT
            ) from e
        except Exception as e:
            logger.error(
                "Unexpected error calling payment gateway",
                extra={**log_extra, 'error': str(e)},
                exc_info=True
            )
            raise PaymentException(
                message=f"An unexpected error occurred while {action}",
                error_code=UNEXPECTED_ERROR,
                kind=ErrorKind.TRANSPORT
            ) from e

    @staticmethod
    def _log_outcome(result, success_message: str, failure_message: str, log_extra: Dict[str, Any]):
        if result.success:
            logger.info(success_message, extra=log_extra)
        else:
            logger.warning(
                failure_message,
                extra={**log_extra, 'error_message': result.error_message}
            )

    # Payments

    async def process_payment(self, request):
        """
        Validate and process a payment.

        Raises:
            PaymentException: INVALID_REQUEST before any gateway call if the
                request is invalid; otherwise whatever the gateway call raised
        """
        try:
            validate_payment_request(request)
        except PaymentException as e:
            logger.warning(
                "Payment request validation failed",
                extra={'errors': e.errors}
            )
            raise

        log_extra = {'amount': str(request.amount), 'currency': request.currency}
        logger.info("Processing payment", extra=log_extra)
        result = await self._execute(
            'processing the payment',
            log_extra,
            self.gateway.process_payment, request
        )
        self._log_outcome(
            result,
            "Payment processed successfully",
            "Payment processing failed",
            {**log_extra, 'transaction_id': result.transaction_id, 'status': result.status}
        )
        return result

    async def process_refund(self, request):
        logger.info(
            "Processing refund",
            extra={'transaction_id': request.transaction_id, 'amount': str(request.amount)}
        )
        result = await self._execute(
            'processing the refund',
            {'transaction_id': request.transaction_id},
            self.gateway.process_refund, request
        )
        self._log_outcome(
            result,
            "Refund processed successfully",
            "Refund processing failed",
            {'transaction_id': request.transaction_id, 'refund_id': result.refund_id}
        )
        return result

    async def get_transaction_details(self, transaction_id: str):
        logger.info("Retrieving transaction details", extra={'transaction_id': transaction_id})
        details = await self._execute(
            'retrieving transaction details',
            {'transaction_id': transaction_id},
            self.gateway.get_transaction_details, transaction_id
        )
        logger.info(
            "Retrieved transaction details",
            extra={'transaction_id': transaction_id, 'status': details.status}
        )
        return details

    # Subscription Management

    async def create_subscription(self, request):
        log_extra = {'customer_id': request.customer_id, 'plan_id': request.plan_id}
        logger.info("Creating subscription", extra=log_extra)
        result = await self._execute(
            'creating the subscription',
            log_extra,
            self.gateway.create_subscription, request
        )
        self._log_outcome(
            result,
            "Subscription created",
            "Failed to create subscription",
            {**log_extra, 'subscription_id': result.subscription_id}
        )
        return result

    async def cancel_subscription(self, subscription_id: str):
        logger.info("Cancelling subscription", extra={'subscription_id': subscription_id})
        result = await self._execute(
            'cancelling the subscription',
            {'subscription_id': subscription_id},
            self.gateway.cancel_subscription, subscription_id
        )
        self._log_outcome(
            result,
            "Subscription cancelled",
            "Failed to cancel subscription",
            {'subscription_id': subscription_id}
        )
        return result

    # Customer Management

    async def create_customer(self, request):
        logger.info("Creating customer", extra={'email': request.email})
        result = await self._execute(
            'creating the customer',
            {'email': request.email},
            self.gateway.create_customer, request
        )
        self._log_outcome(
            result,
            "Customer created",
            "Failed to create customer",
            {'customer_id': result.customer_id}
        )
        return result

    async def get_customer(self, customer_id: str):
        logger.info("Retrieving customer", extra={'customer_id': customer_id})
        result = await self._execute(
            'retrieving the customer',
            {'customer_id': customer_id},
            self.gateway.get_customer, customer_id
        )
        self._log_outcome(
            result,
            "Customer retrieved",
            "Failed to retrieve customer",
            {'customer_id': customer_id}
        )
        return result

    async def update_customer(self, customer_id: str, request):
        logger.info("Updating customer", extra={'customer_id': customer_id})
        result = await self._execute(
            'updating the customer',
            {'customer_id': customer_id},
            self.gateway.update_customer, customer_id, request
        )
        self._log_outcome(
            result,
            "Customer updated",
            "Failed to update customer",
            {'customer_id': customer_id}
        )
        return result

    # Plans

    async def create_plan(self, request):
        logger.info("Creating plan", extra={'plan_name': request.name})
        result = await self._execute(
            'creating the plan',
            {'plan_name': request.name},
            self.gateway.create_plan, request
        )
        self._log_outcome(
            result,
            "Plan created",
            "Failed to create plan",
            {'plan_id': result.plan_id, 'product_id': result.product_id}
        )
        return result

    # Payment Methods

    async def add_payment_method_to_customer(self, customer_id: str, payment_method):
        log_extra = {'customer_id': customer_id, 'payment_method_type': payment_method.type}
        logger.info("Adding payment method to customer", extra=log_extra)
        result = await self._execute(
            'adding the payment method to the customer',
            log_extra,
            self.gateway.add_payment_method_to_customer, customer_id, payment_method
        )
        self._log_outcome(
            result,
            "Payment method added",
            "Failed to add payment method",
            {**log_extra, 'payment_method_id': result.payment_method_id}
        )
        return result
