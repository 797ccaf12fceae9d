"""
Normalized request and result types shared by every gateway.

All gateways accept these requests and return these results so the rest of the
application never sees a provider-specific payload. Values are immutable and
live only for the duration of the call that produced them.

Amounts are Decimal values in major currency units (10.00 means ten dollars).
Status strings are passed through from the provider as-is; only ``success`` is
normalized across gateways.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Inputs

@dataclass(frozen=True)
class Customer:
    name: str
    email: str


@dataclass(frozen=True)
class Address:
    line1: str
    city: str
    postal_code: str
    country: str
    line2: Optional[str] = None
    state: Optional[str] = None


@dataclass(frozen=True)
class PaymentMethodInfo:
    """
    Payment method reference.

    Attributes:
        type: Method type tag (e.g. 'card', 'paypal', 'bank_transfer')
        details: Opaque, already-tokenized reference (e.g. 'pm_card_visa')
    """
    type: str
    details: Optional[str] = None


@dataclass(frozen=True)
class PaymentRequest:
    """
    Request to charge a customer.

    Attributes:
        amount: Amount in major units, must be positive
        currency: ISO 4217 currency code
        payment_method: Tokenized payment method reference
        customer: Paying customer
        billing_address: Required for amounts over 10,000
        description: Optional description, at most 255 characters
    """
    amount: Decimal
    currency: str
    payment_method: PaymentMethodInfo
    customer: Customer
    billing_address: Optional[Address] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class RefundRequest:
    transaction_id: str
    amount: Decimal
    currency: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class CustomerRequest:
    name: str
    email: str
    description: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionRequest:
    """
    Request to subscribe a customer to a plan.

    Attributes:
        customer_id: Gateway customer ID
        plan_id: Gateway plan/price ID
        amount: Recurring amount in major units
        currency: ISO 4217 currency code
        interval: Billing interval unit ('day', 'week', 'month', 'year')
        interval_count: Number of intervals between billings
    """
    customer_id: str
    plan_id: str
    amount: Decimal = Decimal('0')
    currency: str = 'usd'
    interval: str = 'month'
    interval_count: int = 1


@dataclass(frozen=True)
class PlanRequest:
    name: str
    amount: Decimal
    currency: str
    interval: str = 'month'
    interval_count: int = 1
    description: Optional[str] = None


# Results

@dataclass(frozen=True)
class PaymentResult:
    """
    Outcome of a payment.

    Attributes:
        success: Whether the provider captured the payment
        transaction_id: Provider transaction ID, present iff success
        status: Provider-native status string
        amount_processed: Amount actually processed, in major units
        currency: Currency of the processed amount
        timestamp: UTC time the result was produced
        error_message: Provider message, present iff failure
    """
    success: bool
    transaction_id: Optional[str] = None
    status: Optional[str] = None
    amount_processed: Decimal = Decimal('0')
    currency: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)
    error_message: Optional[str] = None


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_id: Optional[str] = None
    refunded_amount: Decimal = Decimal('0')
    timestamp: datetime = field(default_factory=utcnow)
    error_message: Optional[str] = None


@dataclass(frozen=True)
class TransactionDetails:
    """Read model for a previously created payment."""
    transaction_id: str
    amount: Decimal
    currency: str
    status: str
    timestamp: datetime
    payment_method_type: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class CustomerResult:
    success: bool
    customer_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionResult:
    """
    Outcome of a subscription create or cancel.

    ``end_date`` stays None while the subscription is active and the provider
    does not report one.
    """
    success: bool
    subscription_id: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class PlanResult:
    success: bool
    plan_id: Optional[str] = None
    product_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    amount: Decimal = Decimal('0')
    currency: Optional[str] = None
    interval: Optional[str] = None
    interval_count: int = 0
    error_message: Optional[str] = None


@dataclass(frozen=True)
class PaymentMethodResult:
    success: bool
    payment_method_id: Optional[str] = None
    type: Optional[str] = None
    error_message: Optional[str] = None
