"""
Dashboard metrics for a facility owner.

get_dashboard_metrics() resolves the owner's complexes first; without that
list nothing else can be computed, so a failure there aborts with None.
The remaining queries (today's count, this week's reservations, field count)
are independent reads and run concurrently, each in its own session. A
failing query is logged and its metric falls back to zero instead of
failing the whole dashboard.

Week = most recent Sunday 00:00 (local) + 7 days. Occupancy assumes every
field is bookable HOURS_PER_DAY hours a day regardless of the complex's
configured opening hours.
"""

import logging
import os
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel
from sqlmodel import Session, func, select

from fieldbook.models.complex import Complex
from fieldbook.models.reservation import Reservation, ReservationStatus
from fieldbook.models.sports_field import SportsField, SurfaceType

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7
HOURS_PER_DAY = 12
TOP_FIELDS_LIMIT = 5
DASHBOARD_QUERY_WORKERS = int(os.getenv("DASHBOARD_QUERY_WORKERS", "3"))


class TopField(BaseModel):
    field_id: int
    complex_id: int
    name: str
    football_type: int
    surface: SurfaceType
    reservation_count: int


class DashboardStats(BaseModel):
    reservations_today: int = 0
    weekly_revenue: float = 0
    occupancy_percent: int = 0
    top_fields: List[TopField] = []


@dataclass
class WeeklyReservation:
    """One confirmed reservation of the week with the field it was made on."""

    field_id: int
    total_price: float
    complex_id: int
    field_name: str
    football_type: int
    surface: SurfaceType


# ============================================================================
# Calendar helpers
# ============================================================================


def day_bounds(now: datetime) -> Tuple[datetime, datetime]:
    start = datetime.combine(now.date(), time.min)
    return start, start + timedelta(days=1)


def week_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """Sunday 00:00 on or before ``now`` and the following Sunday."""
    days_since_sunday = (now.weekday() + 1) % 7
    start = datetime.combine(now.date() - timedelta(days=days_since_sunday), time.min)
    return start, start + timedelta(days=DAYS_PER_WEEK)


# ============================================================================
# Queries
# ============================================================================


def fetch_owned_complex_ids(session: Session, owner_id: int) -> List[int]:
    return list(session.exec(select(Complex.id).where(Complex.owner_id == owner_id)).all())


def count_reservations_between(session: Session, complex_ids: List[int], start: datetime, end: datetime) -> int:
    count = session.exec(
        select(func.count(Reservation.id))
        .join(SportsField, SportsField.id == Reservation.field_id)
        .where(
            SportsField.complex_id.in_(complex_ids),
            Reservation.status == ReservationStatus.CONFIRMED,
            Reservation.start_at >= start,
            Reservation.start_at < end,
        )
    ).one()
    return int(count or 0)


def fetch_weekly_reservations(
    session: Session, complex_ids: List[int], start: datetime, end: datetime
) -> List[WeeklyReservation]:
    rows = session.exec(
        select(Reservation, SportsField)
        .join(SportsField, SportsField.id == Reservation.field_id)
        .where(
            SportsField.complex_id.in_(complex_ids),
            Reservation.status == ReservationStatus.CONFIRMED,
            Reservation.start_at >= start,
            Reservation.start_at < end,
        )
    ).all()
    return [
        WeeklyReservation(
            field_id=field.id,
            total_price=reservation.total_price or 0,
            complex_id=field.complex_id,
            field_name=field.name,
            football_type=field.football_type,
            surface=field.surface,
        )
        for reservation, field in rows
    ]


def count_fields(session: Session, complex_ids: List[int]) -> int:
    count = session.exec(select(func.count(SportsField.id)).where(SportsField.complex_id.in_(complex_ids))).one()
    return int(count or 0)


# ============================================================================
# Aggregation (pure)
# ============================================================================


def weekly_revenue(reservations: List[WeeklyReservation]) -> float:
    return sum(r.total_price or 0 for r in reservations)


def top_fields(reservations: List[WeeklyReservation], limit: int = TOP_FIELDS_LIMIT) -> List[TopField]:
    """Most booked fields first; ties keep the order fields were first seen."""
    counts = Counter(r.field_id for r in reservations)
    first_seen: Dict[int, WeeklyReservation] = {}
    for r in reservations:
        first_seen.setdefault(r.field_id, r)

    ranked = sorted(first_seen, key=lambda field_id: -counts[field_id])[:limit]
    return [
        TopField(
            field_id=field_id,
            complex_id=first_seen[field_id].complex_id,
            name=first_seen[field_id].field_name,
            football_type=first_seen[field_id].football_type,
            surface=first_seen[field_id].surface,
            reservation_count=counts[field_id],
        )
        for field_id in ranked
    ]


def occupancy_percent(weekly_count: int, field_count: int) -> int:
    """Weekly bookings over theoretical weekly slots, as a 0-100 percentage."""
    slots = max(field_count, 1) * DAYS_PER_WEEK * HOURS_PER_DAY
    percent = round(weekly_count / slots * 100)
    return max(0, min(percent, 100))


# ============================================================================
# Entry point
# ============================================================================


def _degrade(name: str, fn: Callable[[Session], object], default):
    """Wrap a query so a failure is logged and replaced by ``default``."""

    def run(session: Session):
        try:
            return fn(session)
        except Exception as exc:
            logger.warning("Dashboard metric '%s' unavailable: %s", name, exc)
            session.rollback()
            return default

    return run


def _in_own_session(bind, fn: Callable[[Session], object]):
    with Session(bind) as session:
        return fn(session)


def run_queries(session: Session, jobs: Dict[str, Callable[[Session], object]], max_workers: int) -> Dict[str, object]:
    """Run independent read queries; concurrently when max_workers > 1."""
    if max_workers <= 1:
        return {name: job(session) for name, job in jobs.items()}

    bind = session.get_bind()
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {name: executor.submit(_in_own_session, bind, job) for name, job in jobs.items()}
        return {name: future.result() for name, future in futures.items()}


def get_dashboard_metrics(
    session: Session,
    owner_id: int,
    now: Optional[datetime] = None,
    max_workers: Optional[int] = None,
) -> Optional[DashboardStats]:
    """
    Summary statistics for the complexes owned by ``owner_id``.

    Returns None when the owned-complexes lookup itself fails.
    """
    now = now or datetime.now()
    workers = DASHBOARD_QUERY_WORKERS if max_workers is None else max_workers

    try:
        complex_ids = fetch_owned_complex_ids(session, owner_id)
    except Exception as exc:
        logger.error("Failed to fetch complexes for owner %s: %s", owner_id, exc)
        return None

    if not complex_ids:
        return DashboardStats()

    today_start, today_end = day_bounds(now)
    week_start, week_end = week_bounds(now)

    results = run_queries(
        session,
        {
            "today": _degrade(
                "reservations_today",
                lambda s: count_reservations_between(s, complex_ids, today_start, today_end),
                0,
            ),
            "week": _degrade(
                "weekly_reservations",
                lambda s: fetch_weekly_reservations(s, complex_ids, week_start, week_end),
                [],
            ),
            "fields": _degrade("field_count", lambda s: count_fields(s, complex_ids), 0),
        },
        workers,
    )

    week: List[WeeklyReservation] = results["week"]
    return DashboardStats(
        reservations_today=results["today"],
        weekly_revenue=weekly_revenue(week),
        occupancy_percent=occupancy_percent(len(week), results["fields"]),
        top_fields=top_fields(week),
    )


def get_recent_reservations(session: Session, owner_id: int, limit: int = 10) -> List[Reservation]:
    """Latest reservations (by creation time) on any field the owner manages."""
    return list(
        session.exec(
            select(Reservation)
            .join(SportsField, SportsField.id == Reservation.field_id)
            .join(Complex, Complex.id == SportsField.complex_id)
            .where(Complex.owner_id == owner_id)
            .order_by(Reservation.created_at.desc(), Reservation.id.desc())
            .limit(limit)
        ).all()
    )
