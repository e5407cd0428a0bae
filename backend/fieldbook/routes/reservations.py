from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from fieldbook.database import get_session
from fieldbook.dependencies import get_current_user, get_owned_complex
from fieldbook.models.reservation import Reservation, ReservationStatus
from fieldbook.models.sports_field import SportsField
from fieldbook.models.user import User
from fieldbook.services.reservations import (
    InvalidTransitionError,
    OutsideOperatingHoursError,
    ReservationConflictError,
    create_reservation,
    list_user_reservations,
    transition,
)

router = APIRouter()

ALLOWED_DURATIONS = [1, 1.5, 2, 2.5, 3]


class ReservationCreate(BaseModel):
    field_id: int
    start_at: datetime
    duration_hours: float = 2

    @field_validator("duration_hours")
    @classmethod
    def validate_duration(cls, v):
        if v not in ALLOWED_DURATIONS:
            raise ValueError(f"duration_hours must be one of {ALLOWED_DURATIONS}")
        return v

    @field_validator("start_at")
    @classmethod
    def validate_start_at(cls, v):
        # Wall-clock local time; drop any offset the client sent
        return v.replace(tzinfo=None, second=0, microsecond=0)


class ReservationResponse(BaseModel):
    id: int
    user_id: int
    field_id: int
    start_at: datetime
    end_at: datetime
    status: ReservationStatus
    total_price: float
    created_at: datetime

    class Config:
        from_attributes = True


def _get_reservation(session: Session, reservation_id: int) -> Reservation:
    reservation = session.get(Reservation, reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return reservation


def _is_field_owner(session: Session, reservation: Reservation, user: User) -> bool:
    field = session.get(SportsField, reservation.field_id)
    try:
        get_owned_complex(session, field.complex_id, user)
    except HTTPException:
        return False
    return True


def _apply_transition(session: Session, reservation: Reservation, status: ReservationStatus) -> Reservation:
    try:
        return transition(session, reservation, status)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ReservationConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/reservations", response_model=ReservationResponse, status_code=201)
def book(
    data: ReservationCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Book a field; the reservation starts as pending_payment"""
    field = session.get(SportsField, data.field_id)
    if not field:
        raise HTTPException(status_code=404, detail="Field not found")

    try:
        return create_reservation(session, user.id, field, data.start_at, data.duration_hours)
    except ReservationConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OutsideOperatingHoursError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/reservations/mine", response_model=List[ReservationResponse])
def my_reservations(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return list_user_reservations(session, user.id)


@router.get("/reservations/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    reservation = _get_reservation(session, reservation_id)
    if reservation.user_id != user.id and not _is_field_owner(session, reservation, user):
        raise HTTPException(status_code=403, detail="Not your reservation")
    return reservation


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """The booker or the field's owner can cancel"""
    reservation = _get_reservation(session, reservation_id)
    if reservation.user_id != user.id and not _is_field_owner(session, reservation, user):
        raise HTTPException(status_code=403, detail="Not your reservation")
    return _apply_transition(session, reservation, ReservationStatus.CANCELED)


@router.post("/reservations/{reservation_id}/confirm", response_model=ReservationResponse)
def confirm_reservation(
    reservation_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Owner marks the booking as paid"""
    reservation = _get_reservation(session, reservation_id)
    if not _is_field_owner(session, reservation, user):
        raise HTTPException(status_code=403, detail="Only the field's owner can confirm")
    return _apply_transition(session, reservation, ReservationStatus.CONFIRMED)


@router.post("/reservations/{reservation_id}/complete", response_model=ReservationResponse)
def complete_reservation(
    reservation_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    reservation = _get_reservation(session, reservation_id)
    if not _is_field_owner(session, reservation, user):
        raise HTTPException(status_code=403, detail="Only the field's owner can complete")
    return _apply_transition(session, reservation, ReservationStatus.COMPLETED)
