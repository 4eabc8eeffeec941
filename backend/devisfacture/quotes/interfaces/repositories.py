from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from devisfacture.quotes.models import Quote


class AbstractQuoteRepository(ABC):
    """Interface abstraite pour le repository des devis."""

    @abstractmethod
    async def get_by_id(self, *, quote_id: int, user_id: int, for_update: bool = False) -> Optional[Quote]:
        """Récupère un devis de l'utilisateur avec ses lignes et son client."""
        pass

    @abstractmethod
    async def list_by_user_id(
        self, *, user_id: int, offset: int = 0, limit: int = 100, status: Optional[str] = None
    ) -> Tuple[List[Quote], int]:
        pass

    @abstractmethod
    async def next_number(self, *, user_id: int) -> str:
        """Numéro séquentiel suivant pour l'utilisateur."""
        pass

    @abstractmethod
    async def save(self, quote: Quote) -> Quote:
        """Persiste le devis (création ou mise à jour) et commite la transaction."""
        pass

    @abstractmethod
    async def delete(self, quote: Quote) -> None:
        pass

    @abstractmethod
    async def get_invoice_id(self, *, quote_id: int) -> Optional[int]:
        """ID de la facture générée depuis ce devis, s'il y en a une."""
        pass

    @abstractmethod
    async def get_invoice_ids(self, *, quote_ids: List[int]) -> dict:
        pass
