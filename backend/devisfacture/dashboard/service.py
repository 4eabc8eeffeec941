import logging

from fastcrud import FastCRUD
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.clients.models import Client
from devisfacture.dashboard.models import DashboardSummary
from devisfacture.invoices.models import Invoice
from devisfacture.products.models import Product
from devisfacture.quotes.models import Quote

logger = logging.getLogger(__name__)


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_summary(self, user_id: int) -> DashboardSummary:
        """Nombre de clients, produits personnels, devis et factures de l'utilisateur."""
        counts = {}
        for key, model in (("clients", Client), ("products", Product), ("quotes", Quote), ("invoices", Invoice)):
            counts[key] = await FastCRUD(model).count(self.db, user_id=user_id)
        logger.debug(f"[DashboardService] Compteurs user {user_id}: {counts}")
        return DashboardSummary(**counts)
