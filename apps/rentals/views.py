"""API views for the rental domain.

Views are thin: they validate the payload, hand a command to the message
bus (or call the query service) with the authenticated user as actor,
and translate error kinds into HTTP status codes.
"""

from __future__ import annotations

import logging
from uuid import UUID

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import NotFound  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .application import commands
from .bootstrap import get_container
from .domain.errors import ErrorKind
from .serializers import (
    BlockDatesSerializer,
    BlockedDaySerializer,
    BookedRangeSerializer,
    CancellationResultSerializer,
    CreateRentalResponseSerializer,
    ExtensionResultSerializer,
    PriceQuoteSerializer,
    QuoteRequestSerializer,
    RentalCancelSerializer,
    RentalCreateSerializer,
    RentalExtendSerializer,
    RentalSerializer,
    RentalStatusSerializer,
    RentalUpdateSerializer,
    UnblockDatesSerializer,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DELIVERY_UNAVAILABLE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DELIVERY_ADDRESS_REQUIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.SELF_RENTAL_FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.BOOKING_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.ITEM_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.REFUND_REQUIRED: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(err) -> Response:
    return Response(
        err.to_dict(),
        status=ERROR_STATUS.get(err.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


def render(result, serializer_class, *, many=False, status_code=status.HTTP_200_OK) -> Response:
    if not result.is_ok:
        return error_response(result)
    return Response(serializer_class(result.value, many=many).data, status=status_code)


def parse_rental_id(pk) -> UUID:
    try:
        return UUID(str(pk))
    except ValueError:
        raise NotFound("Rental not found")


class RentalViewSet(viewsets.ViewSet):
    """Rentals of the authenticated user, as owner or renter."""

    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def list(self, request):  # type: ignore
        result = get_container().queries.list_rentals(request.user.id)
        return render(result, RentalSerializer, many=True)

    def create(self, request):  # type: ignore
        serializer = RentalCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = get_container().bus.handle_command(commands.CreateRental(
            item_id=data["item_id"],
            renter_id=request.user.id,
            start=data["start"],
            end=data["end"],
            delivery_requested=data["delivery_requested"],
            delivery_address=data["delivery_address"],
            payment_method=data["payment_method"] or None,
        ))
        return render(result, CreateRentalResponseSerializer, status_code=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):  # type: ignore
        result = get_container().queries.get_rental(parse_rental_id(pk), request.user.id)
        return render(result, RentalSerializer)

    def partial_update(self, request, pk=None):  # type: ignore
        rental_id = parse_rental_id(pk)
        container = get_container()

        visible = container.queries.get_rental(rental_id, request.user.id)
        if not visible.is_ok:
            return error_response(visible)

        serializer = RentalUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = container.bus.handle_command(commands.UpdateRental(
            rental_id=rental_id,
            start=data["start"],
            end=data["end"],
            status=data.get("status"),
            payment_status=data.get("payment_status"),
            delivery_requested=data.get("delivery_requested"),
            delivery_address=data.get("delivery_address"),
            actor_id=request.user.id,
        ))
        return render(result, RentalSerializer)

    def destroy(self, request, pk=None):  # type: ignore
        result = get_container().bus.handle_command(
            commands.DeleteRental(rental_id=parse_rental_id(pk), actor_id=request.user.id)
        )
        if not result.is_ok:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):  # type: ignore
        serializer = RentalStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_container().bus.handle_command(commands.ChangeRentalStatus(
            rental_id=parse_rental_id(pk),
            target_status=serializer.validated_data["status"],
            actor_id=request.user.id,
        ))
        return render(result, RentalSerializer)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        serializer = RentalCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_container().bus.handle_command(commands.CancelRental(
            rental_id=parse_rental_id(pk),
            actor_id=request.user.id,
            reason=serializer.validated_data["reason"],
        ))
        return render(result, CancellationResultSerializer)

    @action(detail=True, methods=["post"])
    def extend(self, request, pk=None):  # type: ignore
        serializer = RentalExtendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_container().bus.handle_command(commands.ExtendRental(
            rental_id=parse_rental_id(pk),
            actor_id=request.user.id,
            new_end=serializer.validated_data["new_end"],
        ))
        return render(result, ExtensionResultSerializer)

    @action(detail=False, methods=["post"])
    def quote(self, request):  # type: ignore
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = get_container().queries.quote(
            data["item_id"],
            data["start"],
            data["end"],
            data["delivery_requested"],
            data["delivery_address"],
        )
        return render(result, PriceQuoteSerializer)


class ItemAvailabilityView(APIView):
    """Upcoming booked ranges of an item (availability calendar)."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, item_id):  # type: ignore
        result = get_container().queries.booked_ranges(item_id)
        return render(result, BookedRangeSerializer, many=True)


class ItemBlockedDaysView(APIView):
    """Days the owner took an item off the market.

    Anyone may read them; only the item's owner may block (POST) or
    release (DELETE with ``start`` and ``end`` query parameters) days.
    """

    def get_permissions(self):
        if self.request.method == "GET":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get(self, request, item_id):  # type: ignore
        result = get_container().queries.blocked_days(item_id)
        return render(result, BlockedDaySerializer, many=True)

    def post(self, request, item_id):  # type: ignore
        serializer = BlockDatesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = get_container().bus.handle_command(commands.BlockDates(
            item_id=item_id,
            actor_id=request.user.id,
            start_day=data["start"],
            end_day=data["end"],
            reason=data["reason"],
        ))
        return render(result, BlockedDaySerializer, many=True, status_code=status.HTTP_201_CREATED)

    def delete(self, request, item_id):  # type: ignore
        serializer = UnblockDatesSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = get_container().bus.handle_command(commands.UnblockDates(
            item_id=item_id,
            actor_id=request.user.id,
            start_day=data["start"],
            end_day=data["end"],
        ))
        if not result.is_ok:
            return error_response(result)
        return Response({"released": result.value})
