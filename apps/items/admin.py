"""Admin registration for items."""

from __future__ import annotations

from django.contrib import admin

from .models import Item


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "owner",
        "price_per_day",
        "price_per_hour",
        "deposit",
        "delivery_available",
        "available",
        "created_at",
    )
    list_filter = ("available", "delivery_available")
    search_fields = ("title", "owner__email", "owner__username")
    readonly_fields = ("created_at", "updated_at")
