"""
Availability search over complexes and their fields.

search_complexes() turns a SearchFilters into a page of complexes, each with
its fields annotated with an ``available`` flag:

1. With an availability window (date + start time + duration), load the
   pending and confirmed reservations starting on that date and keep the ones whose
   [start, end) interval overlaps the window. Their field ids are occupied.
2. Load complexes matching the name filter with their fields, amenities and
   average rating.
3. Narrow each complex's fields by the facet filters (type, surface, covered,
   price range) and the complex list by amenities.
4. Flag fields, compute price_from / price_to, drop complexes with nothing
   available inside the window.
5. Sort, then slice the requested page.

Overlap is computed here rather than in SQL: the query pulls every
reservation of the day, which is fine at the volumes one city sees.
"""

import logging
import math
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Set

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from fieldbook.models.complex import Complex
from fieldbook.models.complex_service import ComplexService
from fieldbook.models.reservation import Reservation
from fieldbook.models.review import Review
from fieldbook.models.service import Service
from fieldbook.models.sports_field import SportsField, SurfaceType
from fieldbook.services.reservations import BLOCKING_STATUSES
from fieldbook.utils.search_filters import SearchFilters
from fieldbook.utils.times import calc_end_time, format_hhmm, generate_time_slots, intervals_overlap, window_bounds

logger = logging.getLogger(__name__)

PREVIEW_PAGE_SIZE = 6
SLOT_INTERVAL_MINUTES = 30


class SearchError(Exception):
    """Raised when the backing store fails during a search."""


# ============================================================================
# Result models
# ============================================================================


class FieldAvailability(BaseModel):
    id: int
    name: str
    football_type: int
    surface: SurfaceType
    is_covered: bool
    hourly_price: float
    available: bool = True


class AmenityInfo(BaseModel):
    name: str
    icon: Optional[str] = None


class ComplexSearchItem(BaseModel):
    id: int
    name: str
    address: str
    city: str
    description: Optional[str] = None
    opening_time: time
    closing_time: time
    fields: List[FieldAvailability]
    amenities: List[AmenityInfo] = []
    price_from: Optional[float] = None
    price_to: Optional[float] = None
    rating_average: Optional[float] = None


class SearchResult(BaseModel):
    items: List[ComplexSearchItem]
    total: int
    page: int
    page_size: int
    total_pages: int


# ============================================================================
# Availability
# ============================================================================


def _live_reservations_on(session: Session, day: date) -> List[Reservation]:
    day_start = datetime.combine(day, time.min)
    return session.exec(
        select(Reservation).where(
            Reservation.start_at >= day_start,
            Reservation.start_at < day_start + timedelta(days=1),
            Reservation.status.in_(BLOCKING_STATUSES),
        )
    ).all()


def get_occupied_field_ids(session: Session, day: date, start_time: str, duration_hours: float) -> Set[int]:
    """Field ids with a live reservation overlapping the window on ``day``."""
    window_start, window_end = window_bounds(day, start_time, duration_hours)
    reservations = _live_reservations_on(session, day)

    logger.debug(
        "Availability window %s %s-%s: %d reservations on the day",
        day,
        start_time,
        calc_end_time(start_time, duration_hours),
        len(reservations),
    )

    return {
        r.field_id
        for r in reservations
        if intervals_overlap(r.start_at, r.end_at, window_start, window_end)
    }


def _field_matches_facets(field: SportsField, filters: SearchFilters) -> bool:
    if filters.field_types and field.football_type not in filters.field_types:
        return False
    if filters.surface_types and field.surface not in filters.surface_types:
        return False
    if filters.is_covered is not None and field.is_covered != filters.is_covered:
        return False
    if filters.price_min is not None and field.hourly_price < filters.price_min:
        return False
    if filters.price_max is not None and field.hourly_price > filters.price_max:
        return False
    return True


def _load_fields(session: Session, complex_ids: List[int]) -> Dict[int, List[SportsField]]:
    fields_by_complex: Dict[int, List[SportsField]] = defaultdict(list)
    if not complex_ids:
        return fields_by_complex
    fields = session.exec(
        select(SportsField).where(SportsField.complex_id.in_(complex_ids)).order_by(SportsField.id)
    ).all()
    for f in fields:
        fields_by_complex[f.complex_id].append(f)
    return fields_by_complex


def _load_amenities(session: Session, complex_ids: List[int]) -> Dict[int, List[Service]]:
    amenities: Dict[int, List[Service]] = defaultdict(list)
    if not complex_ids:
        return amenities
    rows = session.exec(
        select(ComplexService.complex_id, Service)
        .join(Service, Service.id == ComplexService.service_id)
        .where(ComplexService.complex_id.in_(complex_ids))
        .order_by(Service.name)
    ).all()
    for complex_id, service in rows:
        amenities[complex_id].append(service)
    return amenities


def _load_ratings(session: Session, complex_ids: List[int]) -> Dict[int, float]:
    if not complex_ids:
        return {}
    rows = session.exec(
        select(Review.complex_id, func.avg(Review.rating))
        .where(Review.complex_id.in_(complex_ids))
        .group_by(Review.complex_id)
    ).all()
    return {complex_id: round(float(avg), 2) for complex_id, avg in rows if avg is not None}


def _sort_key(filters: SearchFilters):
    descending = filters.sort_direction == "desc"

    def numeric(value: Optional[float]):
        # Complexes without a value go last in either direction
        if value is None:
            return (1, 0.0)
        return (0, -value if descending else value)

    if filters.sort_by == "price":
        return lambda item: (numeric(item.price_from), item.name.lower())
    if filters.sort_by == "rating":
        return lambda item: (numeric(item.rating_average), item.name.lower())
    return None


def search_complexes(session: Session, filters: Optional[SearchFilters] = None) -> SearchResult:
    """Return one page of complexes matching ``filters``, annotated with availability."""
    filters = filters or SearchFilters()

    try:
        occupied: Set[int] = set()
        if filters.has_availability_window:
            occupied = get_occupied_field_ids(session, filters.date, filters.start_time, filters.duration_hours)

        query = select(Complex)
        name_query = filters.name_query.strip()
        if name_query:
            query = query.where(func.lower(Complex.name).contains(name_query.lower()))
        complexes = session.exec(query.order_by(Complex.name)).all()

        complex_ids = [c.id for c in complexes]
        fields_by_complex = _load_fields(session, complex_ids)
        amenities_by_complex = _load_amenities(session, complex_ids)
        ratings = _load_ratings(session, complex_ids)
    except SQLAlchemyError as exc:
        logger.exception("Search query failed: %s", exc)
        raise SearchError("Search failed") from exc

    wanted_amenities = {a.strip().lower() for a in filters.amenities if a.strip()}

    items: List[ComplexSearchItem] = []
    for cx in complexes:
        amenities = amenities_by_complex.get(cx.id, [])
        if wanted_amenities and not wanted_amenities <= {s.name.lower() for s in amenities}:
            continue

        fields = [f for f in fields_by_complex.get(cx.id, []) if _field_matches_facets(f, filters)]
        if filters.has_field_facets and not fields:
            continue

        annotated = [
            FieldAvailability(
                id=f.id,
                name=f.name,
                football_type=f.football_type,
                surface=f.surface,
                is_covered=f.is_covered,
                hourly_price=f.hourly_price,
                available=(f.id not in occupied) if filters.has_availability_window else True,
            )
            for f in fields
        ]

        if filters.has_availability_window and not any(f.available for f in annotated):
            continue

        prices = [f.hourly_price for f in annotated]
        price_from = min(prices) if prices else None
        price_to = max(prices) if prices else None

        items.append(
            ComplexSearchItem(
                id=cx.id,
                name=cx.name,
                address=cx.address,
                city=cx.city,
                description=cx.description,
                opening_time=cx.opening_time,
                closing_time=cx.closing_time,
                fields=annotated,
                amenities=[AmenityInfo(name=s.name, icon=s.icon) for s in amenities],
                price_from=price_from,
                price_to=None if price_to == price_from else price_to,
                rating_average=ratings.get(cx.id),
            )
        )

    key = _sort_key(filters)
    if key is not None:
        items.sort(key=key)
    elif filters.sort_direction == "desc":
        items.sort(key=lambda item: item.name.lower(), reverse=True)
    else:
        items.sort(key=lambda item: item.name.lower())

    total = len(items)
    offset = (filters.page - 1) * filters.page_size
    page_items = items[offset : offset + filters.page_size]

    return SearchResult(
        items=page_items,
        total=total,
        page=filters.page,
        page_size=filters.page_size,
        total_pages=math.ceil(total / filters.page_size) if total else 0,
    )


def search_complexes_by_name(session: Session, name: str) -> List[ComplexSearchItem]:
    """Short name search for the homepage preview"""
    result = search_complexes(session, SearchFilters(name_query=name, page_size=PREVIEW_PAGE_SIZE))
    return result.items


def get_available_time_slots(
    session: Session, complex_id: int, day: date, duration_hours: float = 2
) -> List[str]:
    """
    Start times (every 30 minutes) at which a booking of ``duration_hours``
    fits inside the complex's operating hours and at least one of its fields
    is free on ``day``. Unknown complex -> [].
    """
    cx = session.get(Complex, complex_id)
    if not cx:
        return []

    field_ids = set(session.exec(select(SportsField.id).where(SportsField.complex_id == complex_id)).all())
    day_reservations = [r for r in _live_reservations_on(session, day) if r.field_id in field_ids]

    closing = format_hhmm(cx.closing_time)
    slots: List[str] = []
    for slot in generate_time_slots(cx.opening_time, cx.closing_time, SLOT_INTERVAL_MINUTES):
        if calc_end_time(slot, duration_hours) > closing:
            continue
        window_start, window_end = window_bounds(day, slot, duration_hours)
        busy = {
            r.field_id
            for r in day_reservations
            if intervals_overlap(r.start_at, r.end_at, window_start, window_end)
        }
        if field_ids - busy:
            slots.append(slot)
    return slots
