"""
Search endpoints.

Query parameters follow the search page URL (q, fecha, hora, duracion, tipo,
superficie, techada, precio_min, precio_max, servicios, page, ordenar, orden)
so the frontend can forward its query string untouched.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError
from sqlmodel import Session

from fieldbook.database import get_session
from fieldbook.services.availability_search import (
    ComplexSearchItem,
    SearchError,
    SearchResult,
    search_complexes,
    search_complexes_by_name,
)
from fieldbook.utils.search_filters import build_query_from_filters, parse_filters_from_query

router = APIRouter()


class SearchResponse(SearchResult):
    canonical_url: str


@router.get("/search", response_model=SearchResponse)
def search(request: Request, session: Session = Depends(get_session)):
    """Search complexes with availability for an optional date/time window"""
    try:
        filters = parse_filters_from_query(request.query_params)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        result = search_complexes(session, filters)
    except SearchError:
        raise HTTPException(status_code=500, detail="Search failed")

    return SearchResponse(**result.model_dump(), canonical_url=build_query_from_filters(filters))


@router.get("/search/preview", response_model=List[ComplexSearchItem])
def search_preview(q: str = Query("", max_length=100), session: Session = Depends(get_session)):
    """Homepage quick search by complex name"""
    try:
        return search_complexes_by_name(session, q)
    except SearchError:
        raise HTTPException(status_code=500, detail="Search failed")
