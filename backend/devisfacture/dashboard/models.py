from sqlmodel import SQLModel


class DashboardSummary(SQLModel):
    """Compteurs affichés sur le tableau de bord de l'artisan."""
    clients: int = 0
    products: int = 0
    quotes: int = 0
    invoices: int = 0
