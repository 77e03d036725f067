"""URL routing for the rental domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import ItemAvailabilityView, ItemBlockedDaysView, RentalViewSet

router = SimpleRouter()
router.register(r"", RentalViewSet, basename="rental")

urlpatterns = [
    path("items/<uuid:item_id>/availability/", ItemAvailabilityView.as_view(), name="item-availability"),
    path("items/<uuid:item_id>/blocked-days/", ItemBlockedDaysView.as_view(), name="item-blocked-days"),
    path("", include(router.urls)),
]
