"""Admin registration for rentals."""

from __future__ import annotations

from django.contrib import admin

from .models import BlockedDay, PlatformSettings, Rental


@admin.register(Rental)
class RentalAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "item",
        "renter",
        "status",
        "payment_status",
        "start_date",
        "end_date",
        "total_price",
        "created_at",
    )
    list_filter = ("status", "payment_status", "delivery_requested")
    search_fields = ("item__title", "renter__email", "owner__email", "payment_reference")
    readonly_fields = (
        "created_at",
        "updated_at",
        "total_price",
        "platform_fee",
        "delivery_fee",
        "refund_amount",
        "payment_reference",
    )

    def get_queryset(self, request):
        return Rental.all_objects.select_related("item", "renter", "owner")


@admin.register(PlatformSettings)
class PlatformSettingsAdmin(admin.ModelAdmin):
    list_display = ("platform_fee_percentage", "updated_at")


@admin.register(BlockedDay)
class BlockedDayAdmin(admin.ModelAdmin):
    list_display = ("item", "day", "reason", "created_at")
    list_filter = ("day",)
    search_fields = ("item__title", "reason")
