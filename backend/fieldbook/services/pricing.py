"""
Effective hourly price of a field.

A field has a base hourly price and optional PriceRules (day of week + time
window + price). The effective price for a given day and time is the price of
the first active rule covering that time, provided the time also falls inside
the complex's operating hours; otherwise the base price applies.
"""

import logging
from datetime import datetime, time, timedelta
from typing import List, Optional, Sequence

from sqlmodel import Session, select

from fieldbook.models.complex import Complex
from fieldbook.models.price_rule import PriceRule
from fieldbook.models.sports_field import SportsField

logger = logging.getLogger(__name__)


def js_weekday(value: datetime) -> int:
    """Day of week with 0 = Sunday, as stored on PriceRule.day_of_week."""
    return (value.weekday() + 1) % 7


def within_operating_hours(at: time, complex_: Optional[Complex]) -> bool:
    if complex_ is None:
        return True
    return complex_.opening_time <= at < complex_.closing_time


def matching_rule(rules: Sequence[PriceRule], day_of_week: int, at: time) -> Optional[PriceRule]:
    for rule in sorted(rules, key=lambda r: (r.start_time, r.id or 0)):
        if not rule.is_active or rule.day_of_week != day_of_week:
            continue
        if rule.start_time <= at < rule.end_time:
            return rule
    return None


def effective_price(
    field: SportsField,
    rules: Sequence[PriceRule],
    complex_: Optional[Complex],
    day_of_week: int,
    at: time,
) -> float:
    if within_operating_hours(at, complex_):
        rule = matching_rule(rules, day_of_week, at)
        if rule is not None:
            return rule.price
    return field.hourly_price


def get_price_rules(session: Session, field_id: int) -> List[PriceRule]:
    return list(
        session.exec(
            select(PriceRule)
            .where(PriceRule.field_id == field_id)
            .order_by(PriceRule.day_of_week, PriceRule.start_time)
        ).all()
    )


def quote_price(session: Session, field: SportsField, start_at: datetime, duration_hours: float) -> float:
    """
    Total price of booking ``field`` from ``start_at`` for ``duration_hours``.

    Priced per half hour so a booking that crosses a rule boundary pays each
    part at its own rate.
    """
    rules = get_price_rules(session, field.id)
    complex_ = session.get(Complex, field.complex_id)

    total = 0.0
    step = timedelta(minutes=30)
    cursor = start_at
    end_at = start_at + timedelta(minutes=int(round(duration_hours * 60)))
    while cursor < end_at:
        chunk_end = min(cursor + step, end_at)
        hours = (chunk_end - cursor).total_seconds() / 3600
        total += hours * effective_price(field, rules, complex_, js_weekday(cursor), cursor.time())
        cursor = chunk_end
    return round(total, 2)


def replace_pricing(session: Session, field: SportsField, base_price: float, rules: List[dict]) -> List[PriceRule]:
    """
    Overwrite a field's base price and its whole rule set.

    Update, delete and insert run as one commit; on error the caller rolls back.
    """
    field.hourly_price = base_price
    session.add(field)

    for existing in get_price_rules(session, field.id):
        session.delete(existing)
    session.flush()

    new_rules = [PriceRule(field_id=field.id, **rule) for rule in rules]
    session.add_all(new_rules)
    session.commit()

    for rule in new_rules:
        session.refresh(rule)
    logger.info("Field %s pricing replaced: base=%s rules=%d", field.id, base_price, len(new_rules))
    return new_rules
