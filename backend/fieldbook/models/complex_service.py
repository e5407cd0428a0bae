from typing import TYPE_CHECKING

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from fieldbook.models.complex import Complex
    from fieldbook.models.service import Service


class ComplexService(SQLModel, table=True):
    complex_id: int = Field(foreign_key="complex.id", primary_key=True)
    service_id: int = Field(foreign_key="service.id", primary_key=True)

    complex: "Complex" = Relationship(back_populates="service_links")
    service: "Service" = Relationship(back_populates="complex_links")
