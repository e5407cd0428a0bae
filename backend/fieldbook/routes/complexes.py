from datetime import date, datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session, func, select, text

from fieldbook.database import get_session
from fieldbook.dependencies import get_owned_complex, require_facility_admin
from fieldbook.models.complex import Complex
from fieldbook.models.complex_service import ComplexService
from fieldbook.models.review import Review
from fieldbook.models.service import Service
from fieldbook.models.sports_field import SportsField
from fieldbook.models.user import User
from fieldbook.routes.fields import FieldResponse
from fieldbook.routes.services import ServiceResponse
from fieldbook.services.availability_search import get_available_time_slots
from fieldbook.utils.validation import validate_phone

router = APIRouter()


def _check_required_text(v):
    if v is None or not v.strip():
        raise ValueError("field is required")
    return v.strip()


def _check_contact_phone(v):
    result = validate_phone(v)
    if not result.is_valid:
        raise ValueError(result.error)
    return v


class ComplexCreate(BaseModel):
    name: str
    address: str
    city: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    description: Optional[str] = None
    contact_phone: Optional[str] = None
    opening_time: time = time(8, 0)
    closing_time: time = time(23, 0)

    @field_validator("name", "address", "city")
    @classmethod
    def validate_required(cls, v):
        return _check_required_text(v)

    @field_validator("contact_phone")
    @classmethod
    def validate_contact_phone(cls, v):
        return _check_contact_phone(v)

    @model_validator(mode="after")
    def validate_hours(self):
        if self.closing_time <= self.opening_time:
            raise ValueError("closing_time must be greater than opening_time")
        return self


class ComplexUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    description: Optional[str] = None
    contact_phone: Optional[str] = None
    opening_time: Optional[time] = None
    closing_time: Optional[time] = None

    @field_validator("name", "address", "city")
    @classmethod
    def validate_required(cls, v):
        return _check_required_text(v)

    @field_validator("contact_phone")
    @classmethod
    def validate_contact_phone(cls, v):
        return _check_contact_phone(v)

    @field_validator("opening_time", "closing_time")
    @classmethod
    def validate_hours_not_null(cls, v):
        if v is None:
            raise ValueError("operating hours cannot be null")
        return v

    @model_validator(mode="after")
    def validate_hours(self):
        if self.opening_time is not None and self.closing_time is not None:
            if self.closing_time <= self.opening_time:
                raise ValueError("closing_time must be greater than opening_time")
        return self


class ComplexResponse(BaseModel):
    id: int
    owner_id: int
    name: str
    address: str
    city: str
    latitude: Optional[float]
    longitude: Optional[float]
    description: Optional[str]
    contact_phone: Optional[str]
    opening_time: time
    closing_time: time
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ComplexDetail(ComplexResponse):
    fields: List[FieldResponse] = []
    services: List[ServiceResponse] = []
    rating_average: Optional[float] = None
    review_count: int = 0


class ComplexServicesUpdate(BaseModel):
    service_ids: List[int]


@router.get("/complexes", response_model=List[ComplexResponse])
def list_complexes(session: Session = Depends(get_session)):
    """List all complexes"""
    return session.exec(select(Complex).order_by(Complex.name)).all()


@router.get("/complexes/mine", response_model=List[ComplexResponse])
def list_my_complexes(user: User = Depends(require_facility_admin), session: Session = Depends(get_session)):
    """Complexes managed by the caller"""
    return session.exec(select(Complex).where(Complex.owner_id == user.id).order_by(Complex.name)).all()


@router.post("/complexes", response_model=ComplexResponse, status_code=201)
def create_complex(
    complex_data: ComplexCreate,
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    complex_ = Complex(owner_id=user.id, **complex_data.model_dump())
    session.add(complex_)
    session.commit()
    session.refresh(complex_)
    return complex_


@router.get("/complexes/{complex_id}", response_model=ComplexDetail)
def get_complex(complex_id: int, session: Session = Depends(get_session)):
    """Get a complex with its fields, services and rating"""
    complex_ = session.get(Complex, complex_id)
    if not complex_:
        raise HTTPException(status_code=404, detail="Complex not found")

    fields = session.exec(
        select(SportsField).where(SportsField.complex_id == complex_id).order_by(SportsField.name)
    ).all()
    services = session.exec(
        select(Service)
        .join(ComplexService, ComplexService.service_id == Service.id)
        .where(ComplexService.complex_id == complex_id)
        .order_by(Service.name)
    ).all()
    avg_rating, review_count = session.exec(
        select(func.avg(Review.rating), func.count(Review.id)).where(Review.complex_id == complex_id)
    ).one()

    detail = ComplexDetail.model_validate(complex_)
    detail.fields = [FieldResponse.model_validate(f) for f in fields]
    detail.services = [ServiceResponse.model_validate(s) for s in services]
    detail.rating_average = round(float(avg_rating), 2) if avg_rating is not None else None
    detail.review_count = review_count or 0
    return detail


@router.put("/complexes/{complex_id}", response_model=ComplexResponse)
def update_complex(
    complex_id: int,
    complex_data: ComplexUpdate,
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    complex_ = get_owned_complex(session, complex_id, user)

    update_data = complex_data.model_dump(exclude_unset=True)
    opening = update_data.get("opening_time", complex_.opening_time)
    closing = update_data.get("closing_time", complex_.closing_time)
    if closing <= opening:
        raise HTTPException(status_code=422, detail="closing_time must be greater than opening_time")

    for field, value in update_data.items():
        setattr(complex_, field, value)

    complex_.updated_at = datetime.utcnow()
    session.add(complex_)
    session.commit()
    session.refresh(complex_)
    return complex_


@router.delete("/complexes/{complex_id}", status_code=204)
def delete_complex(
    complex_id: int,
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    """Delete a complex and everything hanging off it (fields, rules, reservations, reviews)"""
    get_owned_complex(session, complex_id, user)
    session.expunge_all()

    try:
        params = {"complex_id": complex_id}
        # Children before parents
        session.execute(
            text(
                "DELETE FROM reservation WHERE field_id IN (SELECT id FROM sportsfield WHERE complex_id = :complex_id)"
            ),
            params,
        )
        session.execute(
            text(
                "DELETE FROM pricerule WHERE field_id IN (SELECT id FROM sportsfield WHERE complex_id = :complex_id)"
            ),
            params,
        )
        session.execute(text("DELETE FROM sportsfield WHERE complex_id = :complex_id"), params)
        session.execute(text("DELETE FROM review WHERE complex_id = :complex_id"), params)
        session.execute(text("DELETE FROM complexservice WHERE complex_id = :complex_id"), params)
        session.execute(text("DELETE FROM complex WHERE id = :complex_id"), params)
        session.commit()
        return Response(status_code=204)
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to delete complex: {str(e)}")


@router.get("/complexes/{complex_id}/time-slots", response_model=List[str])
def list_time_slots(
    complex_id: int,
    fecha: date = Query(..., description="YYYY-MM-DD"),
    duracion: float = Query(2, gt=0),
    session: Session = Depends(get_session),
):
    """Bookable start times for a day"""
    if not session.get(Complex, complex_id):
        raise HTTPException(status_code=404, detail="Complex not found")
    return get_available_time_slots(session, complex_id, fecha, duracion)


@router.put("/complexes/{complex_id}/services", response_model=List[ServiceResponse])
def set_complex_services(
    complex_id: int,
    data: ComplexServicesUpdate,
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    """Replace the set of amenities a complex offers"""
    get_owned_complex(session, complex_id, user)

    wanted = set(data.service_ids)
    services = session.exec(select(Service).where(Service.id.in_(wanted))).all() if wanted else []
    missing = wanted - {s.id for s in services}
    if missing:
        raise HTTPException(status_code=404, detail=f"Unknown service ids: {sorted(missing)}")

    for link in session.exec(select(ComplexService).where(ComplexService.complex_id == complex_id)).all():
        session.delete(link)
    session.flush()
    session.add_all([ComplexService(complex_id=complex_id, service_id=s.id) for s in services])
    session.commit()

    return sorted(services, key=lambda s: s.name)
