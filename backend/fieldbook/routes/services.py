from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from fieldbook.database import get_session
from fieldbook.dependencies import require_facility_admin
from fieldbook.models.service import Service
from fieldbook.models.user import User

router = APIRouter()


class ServiceCreate(BaseModel):
    name: str
    icon: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class ServiceResponse(BaseModel):
    id: int
    name: str
    icon: Optional[str] = None

    class Config:
        from_attributes = True


@router.get("/services", response_model=List[ServiceResponse])
def list_services(session: Session = Depends(get_session)):
    """List all amenities"""
    return session.exec(select(Service).order_by(Service.name)).all()


@router.post("/services", response_model=ServiceResponse, status_code=201)
def create_service(
    service_data: ServiceCreate,
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    existing = session.exec(select(Service).where(Service.name == service_data.name)).first()
    if existing:
        raise HTTPException(status_code=409, detail="Service already exists")

    service = Service(**service_data.model_dump())
    session.add(service)
    session.commit()
    session.refresh(service)
    return service
