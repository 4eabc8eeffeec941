import re
from typing import Optional

from devisfacture.profiles.constants import SIRET_LENGTH

_NON_DIGITS = re.compile(r"\D")


def sanitize_digits(value: str, max_length: Optional[int] = None) -> str:
    digits = _NON_DIGITS.sub("", value or "")
    if max_length is not None:
        return digits[:max_length]
    return digits


def is_valid_siret(value: str) -> bool:
    """Contrôle de clé de Luhn sur les 14 chiffres du SIRET."""
    digits = sanitize_digits(value, SIRET_LENGTH)
    if len(digits) != SIRET_LENGTH:
        return False
    total = 0
    for i, char in enumerate(reversed(digits)):
        digit = int(char)
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0
