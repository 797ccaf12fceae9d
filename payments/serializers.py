"""
Request validation for payments.

PaymentRequestSerializer holds the structural rules a payment must satisfy
before any gateway is contacted. It validates raw input (and builds a
PaymentRequest from it via ``save()``) as well as already-built requests
through ``validate_payment_request``.
"""

from dataclasses import asdict, is_dataclass
from decimal import Decimal

from rest_framework import serializers

from .exceptions import PaymentException
from .types import Address, Customer, PaymentMethodInfo, PaymentRequest

# Amounts strictly above this need a billing address
BILLING_ADDRESS_THRESHOLD = Decimal('10000')

CARD_METHOD_TYPES = frozenset({'card', 'credit_card', 'creditcard', 'debit_card', 'debitcard'})


def is_card_method(method_type) -> bool:
    """Check whether a payment method type tag denotes a card."""
    if not method_type:
        return False
    normalized = str(method_type).strip().lower().replace('-', '_').replace(' ', '_')
    return normalized in CARD_METHOD_TYPES


class CustomerSerializer(serializers.Serializer):
    # Customer fields are passed through to the gateway as given
    name = serializers.CharField(allow_blank=True, trim_whitespace=False)
    email = serializers.CharField(allow_blank=True, trim_whitespace=False)


class AddressSerializer(serializers.Serializer):
    # Only the presence of an address is a rule; its fields are not checked
    line1 = serializers.CharField(allow_blank=True, trim_whitespace=False)
    line2 = serializers.CharField(required=False, allow_null=True, allow_blank=True, trim_whitespace=False)
    city = serializers.CharField(allow_blank=True, trim_whitespace=False)
    state = serializers.CharField(required=False, allow_null=True, allow_blank=True, trim_whitespace=False)
    postal_code = serializers.CharField(allow_blank=True, trim_whitespace=False)
    country = serializers.CharField(allow_blank=True, trim_whitespace=False)


class PaymentMethodSerializer(serializers.Serializer):
    type = serializers.CharField(allow_blank=True, trim_whitespace=False)
    details = serializers.CharField(required=False, allow_null=True, allow_blank=True, trim_whitespace=False)


class PaymentRequestSerializer(serializers.Serializer):
    """
    Serializer for payment requests.

    Rules:
        - amount must be greater than zero
        - currency must be a 3-letter code
        - description cannot exceed 255 characters
        - card payments need a non-empty payment method reference
        - amounts over 10,000 need a billing address
    """
    amount = serializers.DecimalField(max_digits=None, decimal_places=None)
    currency = serializers.CharField(min_length=3, max_length=3, trim_whitespace=False)
    payment_method = PaymentMethodSerializer()
    customer = CustomerSerializer()
    billing_address = AddressSerializer(required=False, allow_null=True)
    description = serializers.CharField(
        max_length=255, required=False, allow_null=True, allow_blank=True, trim_whitespace=False
    )

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero")
        return value

    def validate_currency(self, value):
        if not value.isalpha():
            raise serializers.ValidationError("Currency must be a 3-letter code")
        return value

    def validate(self, attrs):
        errors = {}

        payment_method = attrs.get('payment_method') or {}
        details = payment_method.get('details')
        if is_card_method(payment_method.get('type')) and not (details and details.strip()):
            errors['payment_method'] = ["Card details are required for card payments"]

        if attrs['amount'] > BILLING_ADDRESS_THRESHOLD and not attrs.get('billing_address'):
            errors['billing_address'] = ["Billing address is required for amounts over 10,000"]

        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def create(self, validated_data):
        billing_address = validated_data.get('billing_address')
        return PaymentRequest(
            amount=validated_data['amount'],
            currency=validated_data['currency'],
            payment_method=PaymentMethodInfo(**validated_data['payment_method']),
            customer=Customer(**validated_data['customer']),
            billing_address=Address(**billing_address) if billing_address else None,
            description=validated_data.get('description')
        )


def validate_payment_request(request) -> None:
    """
    Validate an already-built PaymentRequest.

    Raises:
        PaymentException: INVALID_REQUEST with the field errors attached
    """
    if not (is_dataclass(request) and isinstance(request, PaymentRequest)):
        raise PaymentException.invalid_request(
            {'non_field_errors': ["Expected a PaymentRequest"]}
        )

    serializer = PaymentRequestSerializer(data=asdict(request))
    if not serializer.is_valid():
        raise PaymentException.invalid_request(
            {field: [str(error) for error in messages] if isinstance(messages, list) else messages
             for field, messages in serializer.errors.items()}
        )
