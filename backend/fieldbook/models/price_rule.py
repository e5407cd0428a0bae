from datetime import time
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from fieldbook.models.sports_field import SportsField


class PriceRule(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    field_id: int = Field(foreign_key="sportsfield.id", index=True)
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    start_time: time
    end_time: time
    price: float
    is_active: bool = Field(default=True)

    # Relationship
    field: "SportsField" = Relationship(back_populates="price_rules")
