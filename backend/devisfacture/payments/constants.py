from enum import Enum


class PaymentMode(str, Enum):
    TRANSFER = "transfer"
    CHECK = "check"
    CASH = "cash"
    CARD = "card"
    DIRECT_DEBIT = "direct_debit"


PAYMENT_MODE_LABELS = {
    PaymentMode.TRANSFER: "Virement",
    PaymentMode.CHECK: "Chèque",
    PaymentMode.CASH: "Espèces",
    PaymentMode.CARD: "Carte bancaire",
    PaymentMode.DIRECT_DEBIT: "Prélèvement",
}


class PaymentIntent(str, Enum):
    DEPOSIT = "deposit" # Acompte
    BALANCE = "balance" # Solde
