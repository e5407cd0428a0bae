"""
Search filter state and its URL representation.

The search page keeps its filters in the query string so results can be
bookmarked and shared. parse_filters_from_query / build_query_from_filters
are inverse views of the same state; a parameter that is absent (or equal to
its default) means "use the default".

URL parameter   filter attribute
-------------   ----------------
q               name_query
fecha           date (YYYY-MM-DD)
hora            start_time (HH:MM)
duracion        duration_hours
tipo            field_types (comma separated)
superficie      surface_types (comma separated)
techada         is_covered (true/false)
precio_min      price_min
precio_max      price_max
servicios       amenities (comma separated)
page            page
ordenar         sort_by
orden           sort_direction
"""
import os
import datetime
from typing import Any, List, Literal, Mapping, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, field_validator, model_validator

from fieldbook.models.sports_field import FOOTBALL_TYPES, SurfaceType
from fieldbook.utils.times import parse_hhmm

SEARCH_PATH = "/buscar"
DEFAULT_DURATION_HOURS = 2.0
DEFAULT_PAGE_SIZE = int(os.getenv("SEARCH_PAGE_SIZE", "12"))


class SearchFilters(BaseModel):
    name_query: str = ""
    date: Optional[datetime.date] = None
    start_time: Optional[str] = None
    duration_hours: float = DEFAULT_DURATION_HOURS
    field_types: List[int] = []
    surface_types: List[SurfaceType] = []
    is_covered: Optional[bool] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    amenities: List[str] = []
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    sort_by: Literal["name", "price", "rating"] = "name"
    sort_direction: Literal["asc", "desc"] = "asc"

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        if v is None or not v.strip():
            return None
        parse_hhmm(v)
        return v.strip()

    @field_validator("field_types")
    @classmethod
    def validate_field_types(cls, v):
        for value in v:
            if value not in FOOTBALL_TYPES:
                raise ValueError(f"field type must be one of {FOOTBALL_TYPES}")
        return v

    @field_validator("duration_hours")
    @classmethod
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError("duration must be > 0")
        return v

    @model_validator(mode="after")
    def validate_paging(self):
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.price_min is not None and self.price_max is not None and self.price_max < self.price_min:
            raise ValueError("precio_max must be >= precio_min")
        return self

    @property
    def has_availability_window(self) -> bool:
        return bool(self.date and self.start_time and self.duration_hours)

    @property
    def has_field_facets(self) -> bool:
        return bool(
            self.field_types
            or self.surface_types
            or self.is_covered is not None
            or self.price_min is not None
            or self.price_max is not None
        )


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def parse_filters_from_query(params: Mapping[str, str]) -> SearchFilters:
    """Build SearchFilters from URL query parameters. Raises ValueError on bad input."""
    data: dict = {}

    if params.get("q"):
        data["name_query"] = params["q"]
    if params.get("fecha"):
        data["date"] = params["fecha"]
    if params.get("hora"):
        data["start_time"] = params["hora"]
    if params.get("duracion"):
        data["duration_hours"] = float(params["duracion"])
    if params.get("tipo"):
        data["field_types"] = [int(t) for t in _split_csv(params["tipo"])]
    if params.get("superficie"):
        data["surface_types"] = _split_csv(params["superficie"])

    covered = params.get("techada")
    if covered == "true":
        data["is_covered"] = True
    elif covered == "false":
        data["is_covered"] = False

    if params.get("precio_min"):
        data["price_min"] = float(params["precio_min"])
    if params.get("precio_max"):
        data["price_max"] = float(params["precio_max"])
    if params.get("servicios"):
        data["amenities"] = _split_csv(params["servicios"])
    if params.get("page"):
        data["page"] = int(params["page"])
    if params.get("ordenar"):
        data["sort_by"] = params["ordenar"]
    if params.get("orden"):
        data["sort_direction"] = params["orden"]

    return SearchFilters(**data)


def build_query_from_filters(filters: SearchFilters) -> str:
    """Render filters as a /buscar URL, emitting only non-default values."""
    params: List[tuple] = []

    if filters.name_query and filters.name_query.strip():
        params.append(("q", filters.name_query.strip()))
    if filters.date:
        params.append(("fecha", filters.date.isoformat()))
    if filters.start_time:
        params.append(("hora", filters.start_time))
    if filters.duration_hours and filters.duration_hours != DEFAULT_DURATION_HOURS:
        params.append(("duracion", _format_number(filters.duration_hours)))
    if filters.field_types:
        params.append(("tipo", ",".join(str(t) for t in filters.field_types)))
    if filters.surface_types:
        params.append(("superficie", ",".join(s.value for s in filters.surface_types)))
    if filters.is_covered is not None:
        params.append(("techada", "true" if filters.is_covered else "false"))
    if filters.price_min is not None:
        params.append(("precio_min", _format_number(filters.price_min)))
    if filters.price_max is not None:
        params.append(("precio_max", _format_number(filters.price_max)))
    if filters.amenities:
        params.append(("servicios", ",".join(filters.amenities)))
    if filters.page > 1:
        params.append(("page", str(filters.page)))
    if filters.sort_by != "name":
        params.append(("ordenar", filters.sort_by))
    if filters.sort_direction != "asc":
        params.append(("orden", filters.sort_direction))

    if not params:
        return SEARCH_PATH
    return f"{SEARCH_PATH}?{urlencode(params, safe=',:')}"


def update_filter(filters: SearchFilters, key: str, value: Any) -> SearchFilters:
    """Set one filter. Any change other than the page itself goes back to page 1."""
    update = {key: value}
    if key != "page":
        update["page"] = 1
    return SearchFilters(**{**filters.model_dump(), **update})


def update_filters(filters: SearchFilters, changes: Mapping[str, Any]) -> SearchFilters:
    return SearchFilters(**{**filters.model_dump(), **dict(changes), "page": 1})


def toggle_array_filter(filters: SearchFilters, key: str, value: Any) -> SearchFilters:
    """Add value to a list filter, or remove it if already present."""
    current = list(getattr(filters, key) or [])
    if value in current:
        current = [item for item in current if item != value]
    else:
        current.append(value)
    return update_filter(filters, key, current)


def clear_filters() -> SearchFilters:
    return SearchFilters()


def has_active_filters(filters: SearchFilters) -> bool:
    return bool(
        filters.name_query.strip()
        or filters.date
        or filters.start_time
        or filters.amenities
        or filters.has_field_facets
    )
