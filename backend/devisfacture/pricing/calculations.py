"""
Calculs monétaires des devis et factures (HT / TVA / TTC).

Toutes les fonctions sont pures et travaillent en Decimal sans arrondi :
l'arrondi à deux décimales n'intervient qu'à l'affichage (voir `format_amount`).
Les entrées non numériques, infinies ou négatives valent 0.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Protocol

from devisfacture.pricing.constants import (
    ALLOWED_TAX_RATES,
    CENT,
    FALLBACK_TAX_RATE,
)

ZERO = Decimal("0")


class PricedLine(Protocol):
    quantity: Any
    unit_price_ht: Any
    tax_rate: Any


@dataclass(frozen=True)
class DocumentTotals:
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal


def to_amount(value: Any) -> Decimal:
    """Convertit une valeur en Decimal positif ou nul (0 si invalide)."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def line_total_ht(quantity: Any, unit_price_ht: Any) -> Decimal:
    return to_amount(quantity) * to_amount(unit_price_ht)


def line_tva(total_ht: Any, tax_rate: Any) -> Decimal:
    return to_amount(total_ht) * to_amount(tax_rate) / Decimal(100)


def document_totals(lines: Iterable[PricedLine]) -> DocumentTotals:
    total_ht = ZERO
    total_tva = ZERO
    for line in lines:
        ht = line_total_ht(line.quantity, line.unit_price_ht)
        total_ht += ht
        total_tva += line_tva(ht, line.tax_rate)
    return DocumentTotals(total_ht=total_ht, total_tva=total_tva, total_ttc=total_ht + total_tva)


def _optional_rate(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not rate.is_finite() or rate < 0:
        return None
    return rate


def resolve_default_tax_rate(
    settings_default: Any = None,
    profile_default: Any = None,
    tva_applicable: Optional[bool] = None,
) -> Decimal:
    """Taux de TVA par défaut.

    Ordre de résolution : paramètres de l'entreprise, puis profil, puis 0 si le
    profil est explicitement non assujetti à la TVA, sinon 20.
    """
    for candidate in (settings_default, profile_default):
        rate = _optional_rate(candidate)
        if rate is not None:
            return rate
    if tva_applicable is False:
        return ZERO
    return FALLBACK_TAX_RATE


def requires_vat_exemption_notice(tax_rate: Any) -> bool:
    """La mention 293 B est obligatoire si et seulement si le taux résolu est nul."""
    return to_amount(tax_rate) == ZERO


def is_allowed_tax_rate(tax_rate: Any) -> bool:
    rate = _optional_rate(tax_rate)
    return rate is not None and rate in ALLOWED_TAX_RATES


def round_amount(value: Any) -> Decimal:
    return to_amount(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Any) -> str:
    """Montant affiché avec deux décimales ('0.00' si invalide)."""
    if isinstance(value, Decimal) and value.is_finite() and value < 0:
        return f"-{round_amount(-value)}"
    return f"{round_amount(value)}"


def format_rate(value: Any) -> str:
    rate = to_amount(value)
    return f"{rate.normalize():f}"
