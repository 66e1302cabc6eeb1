# Overview: Per-diem, estimate and booking total arithmetic.

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable

from ..validation import parse_amount

SECONDS_PER_DAY = 86400


def billable_days(departure: datetime, return_: datetime) -> int:
    """
    Whole days billed between departure and return.

    Uses a ceiling: a trip that spans part of a day bills the full day.
    """
    seconds = (return_ - departure).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY)


def per_diem_cost(rate: Any, departure: datetime, return_: datetime) -> float | None:
    """
    Per-diem total = rate * billable days, rounded to cents.

    A missing or non-positive rate returns None rather than 0 so callers
    can tell "not entered yet" apart from a zero-cost booking.
    """
    parsed = parse_amount(rate, "perDiemRate")
    if parsed is None or parsed <= 0:
        return None
    return round(parsed * billable_days(departure, return_), 2)


def estimated_total(request) -> float:
    """Sum of the three manager-entered estimates; unset estimates count as 0."""
    return round(
        sum(
            parse_amount(value) or 0.0
            for value in (
                request.estimated_flight_cost,
                request.estimated_hotel_cost,
                request.estimated_other_cost,
            )
        ),
        2,
    )


def sum_costs(costs: Iterable[Any]) -> float:
    """Sum booking costs given as numbers or decimal strings; None counts as 0."""
    return round(sum(parse_amount(c) or 0.0 for c in costs), 2)
