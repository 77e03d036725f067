"""Item model for Dorfkiste."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


def default_currency() -> str:
    """Currency new items are priced in (``RENTALS["CURRENCY"]``)."""
    return settings.RENTALS.get("CURRENCY", "EUR")


class Item(models.Model):
    """A rentable resource listed by its owner."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="items",
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price_per_day = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    price_per_hour = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    deposit = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    delivery_available = models.BooleanField(default=False)
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    delivery_radius = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Delivery radius in kilometres."),
    )
    available = models.BooleanField(
        default=True,
        help_text=_("Owner toggle, independent of existing bookings."),
    )
    currency = models.CharField(max_length=3, default=default_currency)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Item")
        verbose_name_plural = _("Items")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title

    def clean(self) -> None:
        if self.price_per_day is None and self.price_per_hour is None:
            raise ValidationError(_("Set a price per day or a price per hour."))
        for field in ("price_per_day", "price_per_hour", "deposit", "delivery_fee"):
            value = getattr(self, field)
            if value is not None and value < Decimal("0"):
                raise ValidationError({field: _("Amounts cannot be negative.")})
