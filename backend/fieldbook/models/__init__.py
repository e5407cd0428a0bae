from fieldbook.models.complex import Complex
from fieldbook.models.complex_service import ComplexService
from fieldbook.models.price_rule import PriceRule
from fieldbook.models.reservation import Reservation, ReservationStatus
from fieldbook.models.review import Review
from fieldbook.models.service import Service
from fieldbook.models.sports_field import FOOTBALL_TYPES, SportsField, SurfaceType
from fieldbook.models.user import User, UserRole

__all__ = [
    "User",
    "UserRole",
    "Complex",
    "SportsField",
    "SurfaceType",
    "FOOTBALL_TYPES",
    "PriceRule",
    "Reservation",
    "ReservationStatus",
    "Review",
    "Service",
    "ComplexService",
]
