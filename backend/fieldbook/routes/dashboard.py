from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from fieldbook.database import get_session
from fieldbook.dependencies import require_facility_admin
from fieldbook.models.reservation import ReservationStatus
from fieldbook.models.user import User
from fieldbook.services.dashboard_metrics import DashboardStats, get_dashboard_metrics, get_recent_reservations

router = APIRouter()


class RecentReservation(BaseModel):
    id: int
    start_at: datetime
    end_at: datetime
    status: ReservationStatus
    total_price: float
    created_at: datetime
    customer_name: str
    customer_email: str
    field_name: str
    football_type: int
    complex_id: int


@router.get("/dashboard/metrics", response_model=DashboardStats)
def dashboard_metrics(user: User = Depends(require_facility_admin), session: Session = Depends(get_session)):
    """Today's bookings, weekly revenue, occupancy and most booked fields"""
    stats = get_dashboard_metrics(session, user.id)
    if stats is None:
        raise HTTPException(status_code=500, detail="Failed to load dashboard metrics")
    return stats


@router.get("/dashboard/recent-reservations", response_model=List[RecentReservation])
def recent_reservations(
    limit: int = Query(10, ge=1, le=50),
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    result = []
    for reservation in get_recent_reservations(session, user.id, limit):
        field = reservation.field
        customer = reservation.user
        result.append(
            RecentReservation(
                id=reservation.id,
                start_at=reservation.start_at,
                end_at=reservation.end_at,
                status=reservation.status,
                total_price=reservation.total_price,
                created_at=reservation.created_at,
                customer_name=customer.full_name,
                customer_email=customer.email,
                field_name=field.name,
                football_type=field.football_type,
                complex_id=field.complex_id,
            )
        )
    return result
