from enum import Enum


class InvoiceStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    # Seul statut réellement stocké, les autres sont dérivés des paiements
    CANCELLED = "cancelled"

