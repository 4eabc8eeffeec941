"""
Numérotation des devis (DEV-0001, DEV-0002...) et des factures qui en dérivent.
"""
from typing import Iterable, Optional

from devisfacture.quotes.constants import INVOICE_NUMBER_PREFIX, NUMBER_PADDING, QUOTE_NUMBER_PREFIX


def format_quote_number(sequence: int) -> str:
    return f"{QUOTE_NUMBER_PREFIX}{sequence:0{NUMBER_PADDING}d}"


def next_quote_number(existing_numbers: Iterable[Optional[str]]) -> str:
    """Numéro suivant : plus grand suffixe numérique existant + 1."""
    highest = 0
    for number in existing_numbers:
        if not number or not number.startswith(QUOTE_NUMBER_PREFIX):
            continue
        suffix = number[len(QUOTE_NUMBER_PREFIX):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return format_quote_number(highest + 1)


def derive_invoice_number(quote_number: Optional[str], quote_id: int) -> str:
    """DEV-0001 devient FA-0001 ; à défaut de préfixe reconnu, FA-<id du devis>."""
    if quote_number and quote_number.startswith(QUOTE_NUMBER_PREFIX):
        return INVOICE_NUMBER_PREFIX + quote_number[len(QUOTE_NUMBER_PREFIX):]
    return f"{INVOICE_NUMBER_PREFIX}{quote_id}"
