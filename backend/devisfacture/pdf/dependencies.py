"""
Dépendances pour le module PDF.
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.database import get_db_session
from devisfacture.pdf.config import PDFSettings, pdf_settings
from devisfacture.pdf.generator import AbstractPDFGenerator
from devisfacture.pdf.reportlab_generator import ReportLabPDFGenerator
from devisfacture.pdf.service import PDFService


def get_pdf_settings() -> PDFSettings:
    """Retourne l'instance globale des paramètres PDF."""
    return pdf_settings


PDFSettingsDep = Annotated[PDFSettings, Depends(get_pdf_settings)]


def get_pdf_generator(settings: PDFSettingsDep) -> AbstractPDFGenerator:
    return ReportLabPDFGenerator(settings=settings)


PDFGeneratorDep = Annotated[AbstractPDFGenerator, Depends(get_pdf_generator)]


def get_pdf_service(
    pdf_generator: PDFGeneratorDep,
    settings: PDFSettingsDep,
    db: AsyncSession = Depends(get_db_session),
) -> PDFService:
    return PDFService(pdf_generator=pdf_generator, settings=settings, db=db)


PDFServiceDep = Annotated[PDFService, Depends(get_pdf_service)]
