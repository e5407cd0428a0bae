from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from fieldbook.models.sports_field import SportsField
    from fieldbook.models.user import User


class ReservationStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    COMPLETED = "completed"


class Reservation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    field_id: int = Field(foreign_key="sportsfield.id", index=True)
    start_at: datetime = Field(index=True)
    end_at: datetime
    status: ReservationStatus = Field(default=ReservationStatus.PENDING_PAYMENT)
    total_price: float = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    user: "User" = Relationship(back_populates="reservations")
    field: "SportsField" = Relationship(back_populates="reservations")
