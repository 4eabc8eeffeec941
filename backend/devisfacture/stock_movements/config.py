"""
Configuration pour le module des mouvements de stock.
"""
from pydantic_settings import BaseSettings


class StockSettings(BaseSettings):
    """Paramètres de configuration pour la gestion des stocks."""

    # Refuser les sorties qui rendraient le stock négatif (désactivé par défaut)
    FORBID_NEGATIVE: bool = False

    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 200

    class Config:
        env_prefix = "STOCK_"
        env_file = ".env"
        extra = "ignore"


stock_settings = StockSettings()
