"""Bornes des périodes du tableau de bord comptable (mois, trimestre, année civils)."""
import calendar
from datetime import date
from typing import Tuple

from devisfacture.accounting.models import PeriodType


def period_bounds(period: PeriodType, reference: date) -> Tuple[date, date]:
    if period == PeriodType.YEAR:
        return date(reference.year, 1, 1), date(reference.year, 12, 31)
    if period == PeriodType.QUARTER:
        first_month = 3 * ((reference.month - 1) // 3) + 1
        last_month = first_month + 2
        return (
            date(reference.year, first_month, 1),
            date(reference.year, last_month, calendar.monthrange(reference.year, last_month)[1]),
        )
    return (
        date(reference.year, reference.month, 1),
        date(reference.year, reference.month, calendar.monthrange(reference.year, reference.month)[1]),
    )
