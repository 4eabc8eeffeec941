"""
Constantes fiscales (TVA française).
"""
from decimal import Decimal

ALLOWED_TAX_RATES = (Decimal("0"), Decimal("5.5"), Decimal("10"), Decimal("20"))

# Taux appliqué lorsqu'aucun paramètre ne le précise
FALLBACK_TAX_RATE = Decimal("20")

VAT_EXEMPTION_NOTICE = "TVA non applicable, art. 293 B du CGI"

CENT = Decimal("0.01")
