from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from fieldbook.models.complex import Complex
    from fieldbook.models.reservation import Reservation
    from fieldbook.models.review import Review


class UserRole(str, Enum):
    PLAYER = "player"
    FACILITY_ADMIN = "facility_admin"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str
    last_name: str
    email: str = Field(index=True, unique=True)
    phone: Optional[str] = None
    role: UserRole = Field(default=UserRole.PLAYER)
    password_hash: str
    registered_at: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    complexes: List["Complex"] = Relationship(back_populates="owner")
    reservations: List["Reservation"] = Relationship(back_populates="user")
    reviews: List["Review"] = Relationship(back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
