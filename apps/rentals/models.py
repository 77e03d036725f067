"""Rental models for Dorfkiste."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ActiveRentalManager(models.Manager):
    """Hides soft-deleted rentals."""

    def get_queryset(self):
        return super().get_queryset().filter(removed_at__isnull=True)


class Rental(models.Model):
    """A renter's reservation of an item."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        ACTIVE = "active", _("Active")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        PAID = "paid", _("Paid")
        REFUNDED = "refunded", _("Refunded")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(
        "items.Item",
        on_delete=models.PROTECT,
        related_name="rentals",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="owned_rentals",
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="rentals",
    )
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    deposit_paid = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="EUR")
    delivery_requested = models.BooleanField(default=False)
    delivery_address = models.CharField(max_length=255, blank=True, null=True)
    payment_method = models.CharField(max_length=50, blank=True, null=True)
    payment_reference = models.CharField(max_length=100, blank=True, null=True)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Deadline for the owner to accept a pending request."),
    )
    cancellation_reason = models.CharField(max_length=255, blank=True)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    handed_over_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    removed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    objects = ActiveRentalManager()
    all_objects = models.Manager()

    class Meta:
        verbose_name = _("Rental")
        verbose_name_plural = _("Rentals")
        ordering = ["-start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="rental_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["item", "start_date", "end_date"], name="rental_item_dates_idx"),
            models.Index(fields=["status"], name="rental_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Rental {self.pk} of {self.item_id} ({self.status})"

    def clean(self) -> None:
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError(_("End date must be after start date."))


class PlatformSettings(models.Model):
    """Platform-wide pricing configuration (a single row)."""

    platform_fee_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("10.00"),
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Platform settings")
        verbose_name_plural = _("Platform settings")

    def __str__(self) -> str:
        return f"Platform fee {self.platform_fee_percentage}%"


class BlockedDay(models.Model):
    """A calendar day on which the owner does not rent the item out."""

    item = models.ForeignKey(
        "items.Item",
        on_delete=models.CASCADE,
        related_name="blocked_days",
    )
    day = models.DateField()
    reason = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Blocked day")
        verbose_name_plural = _("Blocked days")
        ordering = ["day"]
        constraints = [
            models.UniqueConstraint(fields=["item", "day"], name="blocked_day_unique_per_item"),
        ]

    def __str__(self) -> str:
        return f"{self.item_id} blocked on {self.day}"
