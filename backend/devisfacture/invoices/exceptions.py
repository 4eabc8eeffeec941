"""Exceptions spécifiques au module Invoice."""
from devisfacture.core.exceptions import ConflictError, InvalidStateError, NotFoundError, UpstreamError


class InvoiceNotFoundException(NotFoundError):
    def __init__(self, invoice_id: int):
        super().__init__(f"Facture avec ID {invoice_id} non trouvée.")
        self.invoice_id = invoice_id


class QuoteNotAcceptedException(InvalidStateError):
    """Levée lorsqu'on facture un devis qui n'est pas au statut accepté."""
    def __init__(self, quote_id: int, status: str):
        super().__init__("Le devis doit être accepté pour facturer.")
        self.quote_id = quote_id
        self.status = status


class InvoiceAlreadyExistsException(ConflictError):
    def __init__(self, quote_id: int):
        super().__init__("Une facture existe déjà pour ce devis.")
        self.quote_id = quote_id


class InvoiceNumberConflictException(ConflictError):
    def __init__(self, number: str):
        super().__init__(f"Le numéro de facture {number} est déjà utilisé.")
        self.number = number


class InvoiceNotCancellableException(InvalidStateError):
    def __init__(self, invoice_id: int, reason: str):
        super().__init__(reason)
        self.invoice_id = invoice_id


class InvoicePersistenceException(UpstreamError):
    def __init__(self, detail: str = "Erreur lors de l'enregistrement de la facture."):
        super().__init__(detail)
