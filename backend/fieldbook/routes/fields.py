from datetime import date, datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session, select, text

from fieldbook.database import get_session
from fieldbook.dependencies import get_owned_complex, require_facility_admin
from fieldbook.models.complex import Complex
from fieldbook.models.sports_field import FOOTBALL_TYPES, SportsField, SurfaceType
from fieldbook.models.user import User
from fieldbook.services.pricing import effective_price, get_price_rules, js_weekday, replace_pricing
from fieldbook.utils.times import parse_hhmm

router = APIRouter()

ALLOWED_DAYS_OF_WEEK = range(0, 7)


def _check_football_type(v):
    if v is not None and v not in FOOTBALL_TYPES:
        raise ValueError(f"football_type must be one of {FOOTBALL_TYPES}")
    return v


def _check_price(v):
    if v is not None and v < 0:
        raise ValueError("price must be >= 0")
    return v


def _check_name(v):
    if v is None or not v.strip():
        raise ValueError("name is required")
    return v.strip()


def _check_not_null(v):
    # Explicit null on a partial update of a NOT NULL column
    if v is None:
        raise ValueError("value cannot be null")
    return v


class FieldCreate(BaseModel):
    name: str
    football_type: int
    surface: SurfaceType
    is_covered: bool = False
    hourly_price: float
    photos: List[str] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_name(v)

    @field_validator("football_type")
    @classmethod
    def validate_football_type(cls, v):
        return _check_football_type(v)

    @field_validator("hourly_price")
    @classmethod
    def validate_hourly_price(cls, v):
        return _check_price(v)


class FieldUpdate(BaseModel):
    name: Optional[str] = None
    football_type: Optional[int] = None
    surface: Optional[SurfaceType] = None
    is_covered: Optional[bool] = None
    hourly_price: Optional[float] = None
    photos: Optional[List[str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_name(v)

    @field_validator("football_type")
    @classmethod
    def validate_football_type(cls, v):
        return _check_football_type(_check_not_null(v))

    @field_validator("surface", "is_covered")
    @classmethod
    def validate_not_null(cls, v):
        return _check_not_null(v)

    @field_validator("hourly_price")
    @classmethod
    def validate_hourly_price(cls, v):
        return _check_price(_check_not_null(v))


class FieldResponse(BaseModel):
    id: int
    complex_id: int
    name: str
    football_type: int
    surface: SurfaceType
    is_covered: bool
    hourly_price: float
    photos: Optional[List[str]] = None

    class Config:
        from_attributes = True


class PriceRuleIn(BaseModel):
    day_of_week: int  # 0 = Sunday
    start_time: time
    end_time: time
    price: float
    is_active: bool = True

    @field_validator("day_of_week")
    @classmethod
    def validate_day_of_week(cls, v):
        if v not in ALLOWED_DAYS_OF_WEEK:
            raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        return _check_price(v)

    @model_validator(mode="after")
    def validate_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self


class PriceRuleResponse(PriceRuleIn):
    id: int
    field_id: int

    class Config:
        from_attributes = True


class PricingConfig(BaseModel):
    hourly_price: float
    rules: List[PriceRuleIn] = []

    @field_validator("hourly_price")
    @classmethod
    def validate_hourly_price(cls, v):
        return _check_price(v)


class PricingResponse(BaseModel):
    field_id: int
    hourly_price: float
    rules: List[PriceRuleResponse]


class PriceQuote(BaseModel):
    field_id: int
    day: date
    at: str
    hourly_price: float


def _get_field(session: Session, field_id: int) -> SportsField:
    field = session.get(SportsField, field_id)
    if not field:
        raise HTTPException(status_code=404, detail="Field not found")
    return field


def _get_owned_field(session: Session, field_id: int, user: User) -> SportsField:
    field = _get_field(session, field_id)
    get_owned_complex(session, field.complex_id, user)
    return field


@router.get("/complexes/{complex_id}/fields", response_model=List[FieldResponse])
def list_fields(complex_id: int, session: Session = Depends(get_session)):
    if not session.get(Complex, complex_id):
        raise HTTPException(status_code=404, detail="Complex not found")
    return session.exec(
        select(SportsField).where(SportsField.complex_id == complex_id).order_by(SportsField.name)
    ).all()


@router.post("/complexes/{complex_id}/fields", response_model=FieldResponse, status_code=201)
def create_field(
    complex_id: int,
    field_data: FieldCreate,
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    get_owned_complex(session, complex_id, user)

    field = SportsField(complex_id=complex_id, **field_data.model_dump())
    session.add(field)
    session.commit()
    session.refresh(field)
    return field


@router.get("/fields/{field_id}", response_model=FieldResponse)
def get_field(field_id: int, session: Session = Depends(get_session)):
    return _get_field(session, field_id)


@router.put("/fields/{field_id}", response_model=FieldResponse)
def update_field(
    field_id: int,
    field_data: FieldUpdate,
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    field = _get_owned_field(session, field_id, user)

    for attr, value in field_data.model_dump(exclude_unset=True).items():
        setattr(field, attr, value)
    field.updated_at = datetime.utcnow()
    session.add(field)
    session.commit()
    session.refresh(field)
    return field


@router.delete("/fields/{field_id}", status_code=204)
def delete_field(
    field_id: int,
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    """Delete a field with its price rules and reservations"""
    _get_owned_field(session, field_id, user)
    session.expunge_all()

    try:
        params = {"field_id": field_id}
        session.execute(text("DELETE FROM reservation WHERE field_id = :field_id"), params)
        session.execute(text("DELETE FROM pricerule WHERE field_id = :field_id"), params)
        session.execute(text("DELETE FROM sportsfield WHERE id = :field_id"), params)
        session.commit()
        return Response(status_code=204)
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to delete field: {str(e)}")


@router.get("/fields/{field_id}/pricing", response_model=PricingResponse)
def get_pricing(field_id: int, session: Session = Depends(get_session)):
    field = _get_field(session, field_id)
    return PricingResponse(
        field_id=field.id,
        hourly_price=field.hourly_price,
        rules=[PriceRuleResponse.model_validate(r) for r in get_price_rules(session, field_id)],
    )


@router.put("/fields/{field_id}/pricing", response_model=PricingResponse)
def set_pricing(
    field_id: int,
    config: PricingConfig,
    user: User = Depends(require_facility_admin),
    session: Session = Depends(get_session),
):
    """Replace base price and every price rule of a field"""
    field = _get_owned_field(session, field_id, user)
    try:
        rules = replace_pricing(session, field, config.hourly_price, [r.model_dump() for r in config.rules])
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to save pricing: {str(e)}")

    return PricingResponse(
        field_id=field.id,
        hourly_price=field.hourly_price,
        rules=[PriceRuleResponse.model_validate(r) for r in rules],
    )


@router.get("/fields/{field_id}/price", response_model=PriceQuote)
def quote_field_price(
    field_id: int,
    fecha: date = Query(...),
    hora: str = Query(..., description="HH:MM"),
    session: Session = Depends(get_session),
):
    """Effective hourly price of a field at a given date and time"""
    field = _get_field(session, field_id)
    try:
        at = parse_hhmm(hora)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    complex_ = session.get(Complex, field.complex_id)
    price = effective_price(
        field, get_price_rules(session, field_id), complex_, js_weekday(datetime.combine(fecha, at)), at
    )
    return PriceQuote(field_id=field.id, day=fecha, at=hora, hourly_price=price)
