from datetime import date

import pytest
from pydantic import ValidationError

from fieldbook.models.sports_field import SurfaceType
from fieldbook.utils.search_filters import (
    SearchFilters,
    build_query_from_filters,
    clear_filters,
    has_active_filters,
    parse_filters_from_query,
    toggle_array_filter,
    update_filter,
    update_filters,
)


def test_defaults_render_bare_search_path():
    filters = SearchFilters()
    assert filters.duration_hours == 2
    assert filters.page == 1
    assert filters.sort_by == "name"
    assert filters.sort_direction == "asc"
    assert not filters.has_availability_window
    assert build_query_from_filters(filters) == "/buscar"


def test_parse_every_url_parameter():
    filters = parse_filters_from_query(
        {
            "q": "bombonera",
            "fecha": "2026-11-02",
            "hora": "18:00",
            "duracion": "1.5",
            "tipo": "5,7",
            "superficie": "synthetic,natural",
            "techada": "true",
            "precio_min": "5000",
            "precio_max": "15000",
            "servicios": "Parking,WiFi",
            "page": "3",
            "ordenar": "price",
            "orden": "desc",
        }
    )

    assert filters.name_query == "bombonera"
    assert filters.date == date(2026, 11, 2)
    assert filters.start_time == "18:00"
    assert filters.duration_hours == 1.5
    assert filters.field_types == [5, 7]
    assert filters.surface_types == [SurfaceType.SYNTHETIC, SurfaceType.NATURAL]
    assert filters.is_covered is True
    assert filters.price_min == 5000
    assert filters.price_max == 15000
    assert filters.amenities == ["Parking", "WiFi"]
    assert filters.page == 3
    assert filters.sort_by == "price"
    assert filters.sort_direction == "desc"
    assert filters.has_availability_window


def test_build_emits_only_non_default_values():
    filters = SearchFilters(name_query="  river ", date=date(2026, 11, 2), start_time="20:00", is_covered=False)
    assert build_query_from_filters(filters) == "/buscar?q=river&fecha=2026-11-02&hora=20:00&techada=false"

    filters = SearchFilters(duration_hours=1.5, field_types=[5, 11], page=2, sort_direction="desc")
    assert build_query_from_filters(filters) == "/buscar?duracion=1.5&tipo=5,11&page=2&orden=desc"


def test_query_string_survives_parse_then_build():
    url = "/buscar?q=river&fecha=2026-11-02&hora=20:00&tipo=5,7&precio_min=8000&servicios=Parking&ordenar=rating"
    params = dict(pair.split("=", 1) for pair in url.split("?", 1)[1].split("&"))
    assert build_query_from_filters(parse_filters_from_query(params)) == url


def test_parse_rejects_invalid_values():
    with pytest.raises(ValidationError):
        parse_filters_from_query({"tipo": "6"})
    with pytest.raises(ValidationError):
        parse_filters_from_query({"hora": "25:00"})
    with pytest.raises(ValidationError):
        parse_filters_from_query({"page": "0"})
    with pytest.raises(ValueError):
        parse_filters_from_query({"duracion": "two"})


def test_unknown_techada_value_is_ignored():
    assert parse_filters_from_query({"techada": "maybe"}).is_covered is None


def test_update_filter_resets_page_except_for_page_itself():
    filters = SearchFilters(page=4)
    assert update_filter(filters, "name_query", "x").page == 1
    assert update_filter(filters, "page", 5).page == 5
    assert update_filters(filters, {"price_min": 1000, "price_max": 2000}).page == 1


def test_toggle_array_filter_adds_then_removes():
    filters = toggle_array_filter(SearchFilters(page=2), "field_types", 7)
    assert filters.field_types == [7]
    assert filters.page == 1
    filters = toggle_array_filter(filters, "field_types", 7)
    assert filters.field_types == []


def test_has_active_filters():
    assert not has_active_filters(clear_filters())
    assert not has_active_filters(SearchFilters(page=3, sort_by="price"))
    assert has_active_filters(SearchFilters(name_query="river"))
    assert has_active_filters(SearchFilters(is_covered=False))
    assert has_active_filters(SearchFilters(amenities=["WiFi"]))
