import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Path, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.core.pagination import PaginationParams
from devisfacture.core.schemas import PaginatedResponse
from devisfacture.database import get_db_session
from devisfacture.products.exceptions import ProductImportException
from devisfacture.products.importer import CSV_HEADER, CSV_TEMPLATE, decode_csv, parse_product_csv
from devisfacture.products.models import (
    ProductCreate,
    ProductImportMode,
    ProductImportSummary,
    ProductRead,
    ProductUpdate,
)
from devisfacture.products.service import ProductService, to_product_read

logger = logging.getLogger(__name__)


def get_product_service(db: Annotated[AsyncSession, Depends(get_db_session)]) -> ProductService:
    return ProductService(db=db)


ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]

product_router = APIRouter(tags=["Produits"])


@product_router.get("/", response_model=PaginatedResponse[ProductRead])
async def list_products(
    service: ProductServiceDep,
    current_user: CurrentUserDep,
    pagination: PaginationParams,
    search: Optional[str] = Query(None, max_length=100),
    include_inactive: bool = Query(False),
):
    limit, offset = pagination
    products, total = await service.list_products(
        current_user.id, limit=limit, offset=offset, search=search, include_inactive=include_inactive
    )
    return PaginatedResponse[ProductRead](items=[to_product_read(p) for p in products], total=total)


@product_router.post("/", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(service: ProductServiceDep, current_user: CurrentUserDep, data: ProductCreate):
    try:
        return to_product_read(await service.create_product(data, current_user.id))
    except DomainException as e:
        raise to_http_exception(e)


@product_router.get("/import/template", response_class=Response)
async def download_import_template(current_user: CurrentUserDep, blank: bool = Query(False)):
    """Modèle CSV d'import (avec une ligne d'exemple, ou vierge)."""
    filename = "modele-produits-vierge.csv" if blank else "modele-produits.csv"
    return Response(
        content=(CSV_HEADER if blank else CSV_TEMPLATE).encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@product_router.post("/import", response_model=ProductImportSummary)
async def import_products(
    service: ProductServiceDep,
    current_user: CurrentUserDep,
    file: UploadFile = File(...),
    mode: ProductImportMode = Query(ProductImportMode.CREATE),
    dry_run: bool = Query(False),
):
    try:
        if not file.filename or not file.filename.lower().endswith(".csv"):
            raise ProductImportException("Merci de choisir un fichier .csv")
        parsed = parse_product_csv(decode_csv(await file.read()))
        return await service.import_products(current_user.id, parsed, mode=mode, dry_run=dry_run)
    except DomainException as e:
        raise to_http_exception(e)


@product_router.get("/{product_id}", response_model=ProductRead)
async def read_product(service: ProductServiceDep, current_user: CurrentUserDep, product_id: int = Path(..., ge=1)):
    try:
        return to_product_read(await service.get_product(product_id, current_user.id))
    except DomainException as e:
        raise to_http_exception(e)


@product_router.patch("/{product_id}", response_model=ProductRead)
async def update_product(
    service: ProductServiceDep,
    current_user: CurrentUserDep,
    data: ProductUpdate,
    product_id: int = Path(..., ge=1),
):
    try:
        return to_product_read(await service.update_product(product_id, data, current_user.id))
    except DomainException as e:
        raise to_http_exception(e)


@product_router.delete("/{product_id}", response_model=ProductRead)
async def deactivate_product(service: ProductServiceDep, current_user: CurrentUserDep, product_id: int = Path(..., ge=1)):
    try:
        return to_product_read(await service.deactivate_product(product_id, current_user.id))
    except DomainException as e:
        raise to_http_exception(e)
