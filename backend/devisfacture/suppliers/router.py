from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.core.pagination import PaginationParams
from devisfacture.core.schemas import PaginatedResponse
from devisfacture.database import get_db_session
from devisfacture.suppliers.models import SupplierCreate, SupplierRead, SupplierUpdate
from devisfacture.suppliers.service import SupplierService


def get_supplier_service(db: Annotated[AsyncSession, Depends(get_db_session)]) -> SupplierService:
    return SupplierService(db=db)


SupplierServiceDep = Annotated[SupplierService, Depends(get_supplier_service)]

router = APIRouter(tags=["Fournisseurs"])


@router.get("/", response_model=PaginatedResponse[SupplierRead])
async def list_suppliers(service: SupplierServiceDep, current_user: CurrentUserDep, pagination: PaginationParams):
    limit, offset = pagination
    items, total = await service.list_suppliers(current_user.id, limit=limit, offset=offset)
    return PaginatedResponse[SupplierRead](items=items, total=total)


@router.post("/", response_model=SupplierRead, status_code=status.HTTP_201_CREATED)
async def create_supplier(service: SupplierServiceDep, current_user: CurrentUserDep, data: SupplierCreate):
    return await service.create_supplier(data, current_user.id)


@router.get("/{supplier_id}", response_model=SupplierRead)
async def read_supplier(service: SupplierServiceDep, current_user: CurrentUserDep, supplier_id: int = Path(..., ge=1)):
    try:
        return await service.get_supplier(supplier_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@router.patch("/{supplier_id}", response_model=SupplierRead)
async def update_supplier(
    service: SupplierServiceDep,
    current_user: CurrentUserDep,
    data: SupplierUpdate,
    supplier_id: int = Path(..., ge=1),
):
    try:
        return await service.update_supplier(supplier_id, data, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_supplier(service: SupplierServiceDep, current_user: CurrentUserDep, supplier_id: int = Path(..., ge=1)):
    try:
        await service.delete_supplier(supplier_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
