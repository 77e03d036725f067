"""Serializers for the rental API.

Input serializers validate shapes only; business rules (dates in the
past, conflicts, delivery) are enforced by the rental services so every
caller gets the same errors. Output serializers render the service DTOs.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Rental


class RentalCreateSerializer(serializers.Serializer):
    """Rental request by the authenticated renter."""

    item_id = serializers.UUIDField()
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    delivery_requested = serializers.BooleanField(default=False)
    delivery_address = serializers.CharField(
        max_length=255, required=False, allow_blank=True, allow_null=True, default=None
    )
    payment_method = serializers.CharField(
        max_length=50, required=False, allow_blank=True, allow_null=True, default=None
    )


class RentalUpdateSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    status = serializers.ChoiceField(choices=Rental.Status.choices, required=False)
    payment_status = serializers.ChoiceField(choices=Rental.PaymentStatus.choices, required=False)
    delivery_requested = serializers.BooleanField(required=False)
    delivery_address = serializers.CharField(
        max_length=255, required=False, allow_blank=True, allow_null=True
    )


class RentalStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)


class RentalCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class RentalExtendSerializer(serializers.Serializer):
    new_end = serializers.DateTimeField()


class QuoteRequestSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    delivery_requested = serializers.BooleanField(default=False)
    delivery_address = serializers.CharField(
        max_length=255, required=False, allow_blank=True, allow_null=True, default=None
    )


class RentalSerializer(serializers.Serializer):
    """Detailed rental as seen by its owner or renter."""

    id = serializers.UUIDField()
    item_id = serializers.UUIDField()
    owner_id = serializers.IntegerField()
    renter_id = serializers.IntegerField()
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    status = serializers.CharField()
    payment_status = serializers.CharField()
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    platform_fee = serializers.DecimalField(max_digits=10, decimal_places=2)
    deposit_paid = serializers.DecimalField(max_digits=10, decimal_places=2)
    delivery_fee = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField()
    delivery_requested = serializers.BooleanField()
    delivery_address = serializers.CharField(allow_null=True)
    payment_method = serializers.CharField(allow_null=True)
    payment_reference = serializers.CharField(allow_null=True)
    expires_at = serializers.DateTimeField(allow_null=True)
    cancellation_reason = serializers.CharField(allow_blank=True)
    refund_amount = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class PriceSerializer(serializers.Serializer):
    rental_days = serializers.IntegerField()
    base_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    delivery_fee = serializers.DecimalField(max_digits=10, decimal_places=2)
    platform_fee = serializers.DecimalField(max_digits=10, decimal_places=2)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    deposit_required = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField()


class CreateRentalResponseSerializer(PriceSerializer):
    rental_id = serializers.UUIDField()
    status = serializers.CharField()
    payment_status = serializers.CharField()
    payment_reference = serializers.CharField(allow_null=True)


class PriceQuoteSerializer(PriceSerializer):
    item_id = serializers.UUIDField()


class CancellationResultSerializer(serializers.Serializer):
    rental_id = serializers.UUIDField()
    status = serializers.CharField()
    payment_status = serializers.CharField()
    refund_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    deposit_refund = serializers.DecimalField(max_digits=10, decimal_places=2)
    refund_method = serializers.CharField(allow_null=True)


class ExtensionResultSerializer(serializers.Serializer):
    rental_id = serializers.UUIDField()
    new_end = serializers.DateTimeField()
    additional_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_reference = serializers.CharField(allow_null=True)


class BookedRangeSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()


class BlockDatesSerializer(serializers.Serializer):
    """First and last day to block, both inclusive."""

    start = serializers.DateField()
    end = serializers.DateField()
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class UnblockDatesSerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()


class BlockedDaySerializer(serializers.Serializer):
    day = serializers.DateField()
    reason = serializers.CharField()
