from datetime import datetime, time
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from fieldbook.models.complex_service import ComplexService
    from fieldbook.models.review import Review
    from fieldbook.models.sports_field import SportsField
    from fieldbook.models.user import User


class Complex(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="user.id", index=True)
    name: str = Field(index=True)
    address: str
    city: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    description: Optional[str] = None
    contact_phone: Optional[str] = None
    opening_time: time = Field(default=time(8, 0))
    closing_time: time = Field(default=time(23, 0))
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    owner: "User" = Relationship(back_populates="complexes")
    fields: List["SportsField"] = Relationship(back_populates="complex")
    reviews: List["Review"] = Relationship(back_populates="complex")
    service_links: List["ComplexService"] = Relationship(back_populates="complex")
