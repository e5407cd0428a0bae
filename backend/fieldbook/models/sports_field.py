from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from fieldbook.models.complex import Complex
    from fieldbook.models.price_rule import PriceRule
    from fieldbook.models.reservation import Reservation

# Players per side
FOOTBALL_TYPES = [5, 7, 8, 11]


class SurfaceType(str, Enum):
    SYNTHETIC = "synthetic"
    NATURAL = "natural"
    CONCRETE = "concrete"


class SportsField(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    complex_id: int = Field(foreign_key="complex.id", index=True)
    name: str
    football_type: int  # One of FOOTBALL_TYPES
    surface: SurfaceType
    is_covered: bool = Field(default=False)
    hourly_price: float
    photos: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    complex: "Complex" = Relationship(back_populates="fields")
    price_rules: List["PriceRule"] = Relationship(back_populates="field")
    reservations: List["Reservation"] = Relationship(back_populates="field")
