"""Exceptions spécifiques au module Quote."""
from devisfacture.core.exceptions import ConflictError, InvalidStateError, NotFoundError, UpstreamError


class QuoteNotFoundException(NotFoundError):
    """Levée lorsqu'un devis n'existe pas ou n'appartient pas à l'utilisateur."""
    def __init__(self, quote_id: int):
        super().__init__(f"Devis avec ID {quote_id} non trouvé.")
        self.quote_id = quote_id


class QuoteLockedException(InvalidStateError):
    """Levée lorsqu'on modifie les lignes d'un devis déjà facturé."""
    def __init__(self, quote_id: int):
        super().__init__("Ce devis a déjà été facturé : ses lignes ne peuvent plus être modifiées.")
        self.quote_id = quote_id


class InvoicedQuoteDeletionException(InvalidStateError):
    def __init__(self, quote_id: int):
        super().__init__("Un devis facturé ne peut pas être supprimé.")
        self.quote_id = quote_id


class QuoteNumberConflictException(ConflictError):
    def __init__(self, number: str):
        super().__init__(f"Le numéro de devis {number} est déjà utilisé.")
        self.number = number


class QuotePersistenceException(UpstreamError):
    def __init__(self, detail: str = "Erreur lors de l'enregistrement du devis."):
        super().__init__(detail)
