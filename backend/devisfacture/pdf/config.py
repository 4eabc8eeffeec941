"""Configuration spécifique au module PDF.

Surcharge possible par variables d'environnement préfixées `PDF_`.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class PDFSettings(BaseSettings):
    """Paramètres de mise en page des devis et factures."""

    PRIMARY_COLOR_HEX: str = "#1e3a8a"
    LOGO_PATH: Optional[str] = None
    TRIAL_NOTICE: str = "Document généré avec la version d'essai."

    class Config:
        env_prefix = "PDF_"
        env_file = '.env'
        env_file_encoding = 'utf-8'
        extra = 'ignore'


pdf_settings = PDFSettings()
