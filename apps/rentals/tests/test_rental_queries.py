from decimal import Decimal
from uuid import uuid4

import pytest

from apps.rentals.domain.entities import RentalStatus
from apps.rentals.domain.errors import ErrorKind
from conftest import OWNER_ID, RENTER_ID, STRANGER_ID, day


@pytest.fixture
def queries(container):
    return container.queries


def test_participants_can_read_a_rental(queries, make_rental):
    rental = make_rental()

    assert queries.get_rental(rental.id, OWNER_ID).value.id == rental.id
    assert queries.get_rental(rental.id, RENTER_ID).value.total_price == Decimal('275.00')


def test_strangers_cannot_read_a_rental(queries, make_rental):
    rental = make_rental()

    assert queries.get_rental(rental.id, STRANGER_ID).kind == ErrorKind.UNAUTHORIZED
    assert queries.get_rental(uuid4(), OWNER_ID).kind == ErrorKind.NOT_FOUND


def test_list_shows_newest_start_first(queries, make_rental):
    early = make_rental(day(3), day(5))
    late = make_rental(day(20), day(22))
    make_rental(day(8), day(9), renter_id=STRANGER_ID, owner_id=99)

    listed = queries.list_rentals(RENTER_ID).value

    assert [dto.id for dto in listed] == [late.id, early.id]


def test_booked_ranges_skip_past_and_terminal(queries, make_rental, item):
    make_rental(day(1, hour=10), day(3), status=RentalStatus.ACTIVE)
    make_rental(day(10), day(12), status=RentalStatus.CANCELLED)
    make_rental(day(20), day(22), status=RentalStatus.CONFIRMED)

    ranges = queries.booked_ranges(item.id).value

    assert [(r.start, r.end) for r in ranges] == [(day(1, hour=10), day(3)), (day(20), day(22))]
    assert queries.booked_ranges(uuid4()).kind == ErrorKind.NOT_FOUND


def test_quote_previews_price_without_booking(queries, item, rentals):
    quote = queries.quote(item.id, day(10), day(15)).value

    assert quote.total_price == Decimal('275.00')
    assert quote.deposit_required == Decimal('100.00')
    assert rentals.query_by_item(item.id) == []


def test_quote_reports_pricing_errors(queries, item):
    assert queries.quote(item.id, day(10), day(15), True, "x").kind == ErrorKind.DELIVERY_UNAVAILABLE
