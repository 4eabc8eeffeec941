"""
Valeurs par défaut des mentions légales affichées sur les devis et factures.
"""
from decimal import Decimal

DEFAULT_PAYMENT_TERMS = "Paiement à 30 jours"
DEFAULT_PAYMENT_DELAY = "Paiement à 30 jours"
DEFAULT_LATE_PENALTY_RATE = "Taux BCE + 10 points"
DEFAULT_RECOVERY_INDEMNITY_AMOUNT = Decimal("40")
DEFAULT_RECOVERY_INDEMNITY_TEXT = "EUR (article L441-6 du Code de commerce)"
DEFAULT_EARLY_PAYMENT_DISCOUNT = ""

SIRET_LENGTH = 14
