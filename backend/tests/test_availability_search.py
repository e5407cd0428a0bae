"""
Availability search service tests.

Validates:
- no filters -> every complex, every field available
- a window marks occupied fields and drops fully booked complexes
- half-open overlap: a booking ending at the window start does not block
- only pending and confirmed bookings block, as booking itself checks
- facet filters narrow fields, amenities narrow complexes
- sorting, pagination and price_from / price_to
"""

from datetime import date, datetime, time

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, delete

from fieldbook.models.complex import Complex
from fieldbook.models.complex_service import ComplexService
from fieldbook.models.reservation import Reservation, ReservationStatus
from fieldbook.models.review import Review
from fieldbook.models.service import Service
from fieldbook.models.sports_field import SportsField, SurfaceType
from fieldbook.models.user import User, UserRole
from fieldbook.services import availability_search
from fieldbook.services.availability_search import (
    SearchError,
    get_available_time_slots,
    get_occupied_field_ids,
    search_complexes,
    search_complexes_by_name,
)
from fieldbook.services.reservations import BLOCKING_STATUSES, find_conflicts
from fieldbook.utils.search_filters import SearchFilters

DAY = date(2026, 11, 4)


def _at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


@pytest.fixture
def world(session: Session):
    """
    Two complexes:
      Arena Norte: A1 (5, synthetic, 8000), A2 (7, natural, covered, 12000) + Parking, WiFi
      Boca Sur:    B1 (5, concrete, 9000)                                 + Parking
    """
    owner = User(first_name="Diego", last_name="Owner", email="o@example.com", password_hash="x",
                 role=UserRole.FACILITY_ADMIN)
    player = User(first_name="Lio", last_name="Player", email="p@example.com", password_hash="x")
    session.add_all([owner, player])
    session.flush()

    norte = Complex(owner_id=owner.id, name="Arena Norte", address="Av. 1", city="CABA")
    sur = Complex(owner_id=owner.id, name="Boca Sur", address="Av. 2", city="CABA")
    session.add_all([norte, sur])
    session.flush()

    a1 = SportsField(complex_id=norte.id, name="A1", football_type=5, surface=SurfaceType.SYNTHETIC,
                     hourly_price=8000)
    a2 = SportsField(complex_id=norte.id, name="A2", football_type=7, surface=SurfaceType.NATURAL,
                     is_covered=True, hourly_price=12000)
    b1 = SportsField(complex_id=sur.id, name="B1", football_type=5, surface=SurfaceType.CONCRETE,
                     hourly_price=9000)
    session.add_all([a1, a2, b1])

    parking = Service(name="Parking")
    wifi = Service(name="WiFi")
    session.add_all([parking, wifi])
    session.flush()
    session.add_all([
        ComplexService(complex_id=norte.id, service_id=parking.id),
        ComplexService(complex_id=norte.id, service_id=wifi.id),
        ComplexService(complex_id=sur.id, service_id=parking.id),
    ])
    session.add_all([
        Review(user_id=player.id, complex_id=norte.id, rating=3),
        Review(user_id=player.id, complex_id=sur.id, rating=5),
        Review(user_id=player.id, complex_id=sur.id, rating=4),
    ])
    session.commit()
    return {"owner": owner, "player": player, "norte": norte, "sur": sur, "a1": a1, "a2": a2, "b1": b1}


def _book(session: Session, world, field, start: datetime, end: datetime, status=ReservationStatus.CONFIRMED):
    session.add(Reservation(user_id=world["player"].id, field_id=field.id, start_at=start, end_at=end,
                            status=status, total_price=field.hourly_price))
    session.commit()


def _window(**kwargs) -> SearchFilters:
    return SearchFilters(date=DAY, start_time="18:00", duration_hours=1, **kwargs)


def test_no_filters_returns_everything_available(session: Session, world):
    _book(session, world, world["a1"], _at(18), _at(19))

    result = search_complexes(session)

    assert result.total == 2
    assert [c.name for c in result.items] == ["Arena Norte", "Boca Sur"]
    assert all(f.available for c in result.items for f in c.fields)


def test_window_marks_occupied_fields_and_keeps_free_ones(session: Session, world):
    _book(session, world, world["a1"], _at(17, 30), _at(18, 30))

    result = search_complexes(session, _window())
    norte = next(c for c in result.items if c.name == "Arena Norte")

    availability = {f.name: f.available for f in norte.fields}
    assert availability == {"A1": False, "A2": True}


def test_window_drops_complex_with_every_field_occupied(session: Session, world):
    _book(session, world, world["b1"], _at(17), _at(20))

    result = search_complexes(session, _window())

    assert [c.name for c in result.items] == ["Arena Norte"]
    assert result.total == 1


def test_touching_and_canceled_bookings_do_not_block(session: Session, world):
    _book(session, world, world["b1"], _at(17), _at(18))
    _book(session, world, world["b1"], _at(19), _at(20))
    _book(session, world, world["b1"], _at(18), _at(19), status=ReservationStatus.CANCELED)

    occupied = get_occupied_field_ids(session, DAY, "18:00", 1)

    assert world["b1"].id not in occupied


def test_search_and_booking_agree_on_blocking_statuses(session: Session, world):
    for status in ReservationStatus:
        _book(session, world, world["b1"], _at(18), _at(19), status=status)

        occupied = world["b1"].id in get_occupied_field_ids(session, DAY, "18:00", 1)
        conflicts = find_conflicts(session, world["b1"].id, _at(18), _at(19))

        assert occupied == bool(conflicts), status
        assert occupied == (status in BLOCKING_STATUSES), status
        session.execute(delete(Reservation))
        session.commit()


def test_completed_booking_leaves_field_available(session: Session, world):
    _book(session, world, world["b1"], _at(18), _at(19), status=ReservationStatus.COMPLETED)

    result = search_complexes(session, _window(name_query="boca"))

    assert [f.available for f in result.items[0].fields] == [True]


def test_bookings_on_other_days_do_not_block(session: Session, world):
    _book(session, world, world["b1"], _at(18, day=date(2026, 11, 5)), _at(19, day=date(2026, 11, 5)))

    assert get_occupied_field_ids(session, DAY, "18:00", 1) == set()


def test_occupied_set_only_contains_overlapping_bookings(session: Session, world):
    """Every reported field really overlaps the window"""
    _book(session, world, world["a1"], _at(16), _at(18, 30))
    _book(session, world, world["a2"], _at(20), _at(21))
    _book(session, world, world["b1"], _at(18, 59), _at(20))

    assert get_occupied_field_ids(session, DAY, "18:00", 1) == {world["a1"].id, world["b1"].id}


def test_name_filter_is_case_insensitive_substring(session: Session, world):
    result = search_complexes(session, SearchFilters(name_query="  NORTE "))
    assert [c.name for c in result.items] == ["Arena Norte"]


def test_price_from_and_price_to(session: Session, world):
    result = search_complexes(session)
    by_name = {c.name: c for c in result.items}

    assert by_name["Arena Norte"].price_from == 8000
    assert by_name["Arena Norte"].price_to == 12000
    # Single price: price_to omitted
    assert by_name["Boca Sur"].price_from == 9000
    assert by_name["Boca Sur"].price_to is None


def test_facets_narrow_fields_and_drop_empty_complexes(session: Session, world):
    result = search_complexes(session, SearchFilters(field_types=[7]))
    assert [c.name for c in result.items] == ["Arena Norte"]
    assert [f.name for f in result.items[0].fields] == ["A2"]

    result = search_complexes(session, SearchFilters(surface_types=[SurfaceType.CONCRETE]))
    assert [c.name for c in result.items] == ["Boca Sur"]

    result = search_complexes(session, SearchFilters(is_covered=False, price_max=8500))
    assert [(c.name, [f.name for f in c.fields]) for c in result.items] == [("Arena Norte", ["A1"])]


def test_amenities_require_every_requested_service(session: Session, world):
    result = search_complexes(session, SearchFilters(amenities=["parking", "WiFi"]))
    assert [c.name for c in result.items] == ["Arena Norte"]
    assert [a.name for a in result.items[0].amenities] == ["Parking", "WiFi"]


def test_sort_by_price_and_rating(session: Session, world):
    by_price = search_complexes(session, SearchFilters(sort_by="price", sort_direction="desc"))
    assert [c.name for c in by_price.items] == ["Boca Sur", "Arena Norte"]

    by_rating = search_complexes(session, SearchFilters(sort_by="rating", sort_direction="desc"))
    assert [(c.name, c.rating_average) for c in by_rating.items] == [("Boca Sur", 4.5), ("Arena Norte", 3.0)]

    by_name = search_complexes(session, SearchFilters(sort_direction="desc"))
    assert [c.name for c in by_name.items] == ["Boca Sur", "Arena Norte"]


def test_pagination_counts_after_filtering(session: Session, world):
    for i in range(3):
        session.add(Complex(owner_id=world["owner"].id, name=f"Zona {i}", address="x", city="CABA"))
    session.commit()

    first = search_complexes(session, SearchFilters(page=1, page_size=2))
    last = search_complexes(session, SearchFilters(page=3, page_size=2))
    beyond = search_complexes(session, SearchFilters(page=9, page_size=2))

    assert first.total == 5
    assert first.total_pages == 3
    assert [c.name for c in first.items] == ["Arena Norte", "Boca Sur"]
    assert [c.name for c in last.items] == ["Zona 2"]
    assert beyond.items == []
    assert beyond.total == 5


def test_empty_store_is_not_an_error(session: Session):
    result = search_complexes(session, _window())
    assert result.items == []
    assert result.total == 0
    assert result.total_pages == 0


def test_backend_failure_surfaces_as_search_error(session: Session, world, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(availability_search, "_load_fields", broken)

    with pytest.raises(SearchError, match="Search failed"):
        search_complexes(session)


def test_search_by_name_preview(session: Session, world):
    items = search_complexes_by_name(session, "boca")
    assert [c.name for c in items] == ["Boca Sur"]


def test_time_slots_fit_inside_operating_hours(session: Session, world):
    cx = world["sur"]
    cx.opening_time = time(18, 0)
    cx.closing_time = time(21, 0)
    session.add(cx)
    session.commit()

    assert get_available_time_slots(session, cx.id, DAY, 2) == ["18:00", "18:30", "19:00"]
    assert get_available_time_slots(session, 9999, DAY, 2) == []


def test_time_slots_skip_times_when_every_field_is_booked(session: Session, world):
    cx = world["sur"]
    cx.opening_time = time(18, 0)
    cx.closing_time = time(21, 0)
    session.add(cx)
    session.commit()
    _book(session, world, world["b1"], _at(18), _at(19))

    assert get_available_time_slots(session, cx.id, DAY, 1) == ["19:00", "19:30", "20:00"]
