"""
Base class for payment gateway implementations.

This module defines the interface that all payment gateways must implement,
enabling the application to switch between providers (Stripe, PayPal, the
sandbox simulator) without changing business logic.
"""

from abc import ABC, abstractmethod
from typing import FrozenSet

from ..exceptions import PaymentException
from ..types import (
    CustomerRequest,
    CustomerResult,
    PaymentMethodInfo,
    PaymentMethodResult,
    PaymentRequest,
    PaymentResult,
    PlanRequest,
    PlanResult,
    RefundRequest,
    RefundResult,
    SubscriptionRequest,
    SubscriptionResult,
    TransactionDetails,
)

OPERATIONS = (
    'process_payment',
    'process_refund',
    'get_transaction_details',
    'create_subscription',
    'cancel_subscription',
    'create_customer',
    'get_customer',
    'update_customer',
    'create_plan',
    'add_payment_method_to_customer',
)


class BasePaymentGateway(ABC):
    """
    Abstract base class for payment gateway implementations.

    Every operation is a coroutine taking a normalized request and returning a
    normalized result. Gateways that cannot perform an operation must raise a
    capability-gap PaymentException (see ``unsupported``) rather than return an
    empty result.

    Methods:
        - Payments (process payment, refund, transaction lookup)
        - Subscription management (create, cancel)
        - Customer management (create, retrieve, update)
        - Plans (create product + recurring price)
        - Payment methods (attach to customer)
    """

    name = 'base'

    # Operations this gateway leaves unimplemented
    unsupported_operations: FrozenSet[str] = frozenset()

    @classmethod
    def supported_operations(cls) -> FrozenSet[str]:
        """Names of the operations this gateway implements."""
        return frozenset(OPERATIONS) - cls.unsupported_operations

    @classmethod
    def supports(cls, operation: str) -> bool:
        return operation in cls.supported_operations()

    def unsupported(self, operation: str) -> PaymentException:
        """Build the capability-gap error for ``operation``."""
        return PaymentException.not_supported(self.name, operation)

    # Payments

    @abstractmethod
    async def process_payment(self, request: PaymentRequest) -> PaymentResult:
        """
        Charge a customer.

        Args:
            request: Validated payment request

        Returns:
            PaymentResult with transaction_id on success
        """

    @abstractmethod
    async def process_refund(self, request: RefundRequest) -> RefundResult:
        """
        Refund a previous payment, fully or partially.

        Returns:
            RefundResult with refund_id on success
        """

    @abstractmethod
    async def get_transaction_details(self, transaction_id: str) -> TransactionDetails:
        """Retrieve a previously created payment."""

    # Subscription Management

    @abstractmethod
    async def create_subscription(self, request: SubscriptionRequest) -> SubscriptionResult:
        """
        Create a subscription for a customer.

        Returns:
            SubscriptionResult with subscription_id, status and start_date
        """

    @abstractmethod
    async def cancel_subscription(self, subscription_id: str) -> SubscriptionResult:
        """Cancel a subscription immediately."""

    # Customer Management

    @abstractmethod
    async def create_customer(self, request: CustomerRequest) -> CustomerResult:
        """Create a customer in the payment gateway."""

    @abstractmethod
    async def get_customer(self, customer_id: str) -> CustomerResult:
        """Retrieve customer details from the payment gateway."""

    @abstractmethod
    async def update_customer(self, customer_id: str, request: CustomerRequest) -> CustomerResult:
        """Update name, email and description of a customer."""

    # Plans

    @abstractmethod
    async def create_plan(self, request: PlanRequest) -> PlanResult:
        """
        Create a recurring price plan.

        Returns:
            PlanResult with plan_id and the backing product_id
        """

    # Payment Methods

    @abstractmethod
    async def add_payment_method_to_customer(
        self,
        customer_id: str,
        payment_method: PaymentMethodInfo
    ) -> PaymentMethodResult:
        """Attach a tokenized payment method to a customer."""
