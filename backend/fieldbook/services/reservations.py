"""
Reservation lifecycle.

pending_payment -> confirmed -> completed
pending_payment | confirmed -> canceled

A new reservation is rejected when it overlaps a pending or confirmed
reservation on the same field; this is the only place two bookings of one
field are kept apart, the store has no exclusion constraint.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set

from sqlmodel import Session, select

from fieldbook.models.complex import Complex
from fieldbook.models.reservation import Reservation, ReservationStatus
from fieldbook.models.sports_field import SportsField
from fieldbook.services.pricing import quote_price
from fieldbook.utils.times import intervals_overlap

logger = logging.getLogger(__name__)

BLOCKING_STATUSES = (ReservationStatus.PENDING_PAYMENT, ReservationStatus.CONFIRMED)

ALLOWED_TRANSITIONS: Dict[ReservationStatus, Set[ReservationStatus]] = {
    ReservationStatus.PENDING_PAYMENT: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELED},
    ReservationStatus.CONFIRMED: {ReservationStatus.COMPLETED, ReservationStatus.CANCELED},
    ReservationStatus.CANCELED: set(),
    ReservationStatus.COMPLETED: set(),
}


class ReservationConflictError(Exception):
    """The requested interval overlaps an existing booking of the field."""


class InvalidTransitionError(Exception):
    pass


class OutsideOperatingHoursError(Exception):
    pass


def find_conflicts(
    session: Session, field_id: int, start_at: datetime, end_at: datetime, exclude_id: Optional[int] = None
) -> List[Reservation]:
    candidates = session.exec(
        select(Reservation).where(
            Reservation.field_id == field_id,
            Reservation.status.in_(BLOCKING_STATUSES),
            Reservation.start_at < end_at,
            Reservation.end_at > start_at,
        )
    ).all()
    return [
        r
        for r in candidates
        if r.id != exclude_id and intervals_overlap(r.start_at, r.end_at, start_at, end_at)
    ]


def create_reservation(
    session: Session, user_id: int, field: SportsField, start_at: datetime, duration_hours: float
) -> Reservation:
    end_at = start_at + timedelta(minutes=int(round(duration_hours * 60)))

    complex_ = session.get(Complex, field.complex_id)
    if complex_ is not None:
        if start_at.time() < complex_.opening_time or end_at.date() != start_at.date() or (
            end_at.time() > complex_.closing_time
        ):
            raise OutsideOperatingHoursError(
                f"Reservation must fall within {complex_.opening_time:%H:%M}-{complex_.closing_time:%H:%M}"
            )

    if find_conflicts(session, field.id, start_at, end_at):
        raise ReservationConflictError("Field is already booked for that time")

    reservation = Reservation(
        user_id=user_id,
        field_id=field.id,
        start_at=start_at,
        end_at=end_at,
        status=ReservationStatus.PENDING_PAYMENT,
        total_price=quote_price(session, field, start_at, duration_hours),
    )
    session.add(reservation)
    session.commit()
    session.refresh(reservation)
    logger.info("Reservation %s created on field %s by user %s", reservation.id, field.id, user_id)
    return reservation


def transition(session: Session, reservation: Reservation, new_status: ReservationStatus) -> Reservation:
    if new_status not in ALLOWED_TRANSITIONS[reservation.status]:
        raise InvalidTransitionError(
            f"Cannot move reservation from {reservation.status.value} to {new_status.value}"
        )

    if new_status == ReservationStatus.CONFIRMED and find_conflicts(
        session, reservation.field_id, reservation.start_at, reservation.end_at, exclude_id=reservation.id
    ):
        raise ReservationConflictError("Another booking overlaps this reservation")

    reservation.status = new_status
    reservation.updated_at = datetime.utcnow()
    session.add(reservation)
    session.commit()
    session.refresh(reservation)
    return reservation


def list_user_reservations(session: Session, user_id: int) -> List[Reservation]:
    return list(
        session.exec(
            select(Reservation).where(Reservation.user_id == user_id).order_by(Reservation.start_at.desc())
        ).all()
    )
