import json
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Header, Path, Request, Response
from pydantic import ValidationError as PydanticValidationError

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.config import settings
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.pdf.dependencies import PDFServiceDep
from devisfacture.pdf.exceptions import InvalidPDFRequestException, OriginNotAllowedException
from devisfacture.pdf.models import PDFDocumentPayload
from devisfacture.subscriptions.dependencies import require_active_subscription

logger = logging.getLogger(__name__)

pdf_router = APIRouter(tags=["PDF"], dependencies=[Depends(require_active_subscription)])


def _pdf_response(pdf_bytes: bytes, filename: str) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def check_origin(origin: Optional[str]) -> None:
    """Refuse les appels navigateur venant d'une origine non déclarée."""
    if origin and origin not in settings.ALLOWED_ORIGINS:
        raise OriginNotAllowedException(origin)


@pdf_router.post("/generate", response_class=Response)
async def generate_pdf(
    request: Request,
    pdf_service: PDFServiceDep,
    current_user: CurrentUserDep,
    origin: Optional[str] = Header(None),
):
    """Génère le PDF d'un devis ou d'une facture à partir des données fournies."""
    try:
        check_origin(origin)
        try:
            payload = PDFDocumentPayload.model_validate(json.loads(await request.body()))
        except (ValueError, PydanticValidationError) as e:
            logger.warning(f"Requête PDF invalide de user {current_user.id}: {e}")
            raise InvalidPDFRequestException()
        pdf_bytes, filename = await pdf_service.render(payload)
    except DomainException as e:
        raise to_http_exception(e)
    return _pdf_response(pdf_bytes, filename)


@pdf_router.get("/{doc_type}/{doc_id}", response_class=Response)
async def download_document_pdf(
    pdf_service: PDFServiceDep,
    current_user: CurrentUserDep,
    doc_type: Literal["devis", "facture"],
    doc_id: int = Path(..., ge=1),
):
    try:
        pdf_bytes, filename = await pdf_service.render_stored(doc_type, doc_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)
    return _pdf_response(pdf_bytes, filename)
