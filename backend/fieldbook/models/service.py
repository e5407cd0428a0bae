from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from fieldbook.models.complex_service import ComplexService


class Service(SQLModel, table=True):
    """An amenity offered by complexes (parking, WiFi, showers...)."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)
    icon: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    complex_links: List["ComplexService"] = Relationship(back_populates="service")
