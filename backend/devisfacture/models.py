"""
Point d'import unique des modèles de table, pour peupler SQLModel.metadata
(création des tables au démarrage et dans les tests).
"""
from devisfacture.billing.models import ProcessedBillingEvent
from devisfacture.clients.models import Client
from devisfacture.invoices.models import Invoice, InvoiceLine
from devisfacture.payments.models import Payment
from devisfacture.products.models import Product
from devisfacture.profiles.models import CompanySettings, Profile
from devisfacture.quotes.models import Quote, QuoteLine
from devisfacture.stock_movements.models import StockMovement
from devisfacture.subscriptions.models import MainPlan, PremiumOption
from devisfacture.suppliers.models import Supplier
from devisfacture.users.models import User

__all__ = [
    "Client",
    "CompanySettings",
    "Invoice",
    "InvoiceLine",
    "MainPlan",
    "Payment",
    "PremiumOption",
    "ProcessedBillingEvent",
    "Product",
    "Profile",
    "Quote",
    "QuoteLine",
    "StockMovement",
    "Supplier",
    "User",
]
