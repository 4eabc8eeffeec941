import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.clients.models import ClientCreate, ClientRead, ClientUpdate
from devisfacture.clients.service import ClientService
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.core.pagination import PaginationParams
from devisfacture.core.schemas import PaginatedResponse
from devisfacture.database import get_db_session

logger = logging.getLogger(__name__)


def get_client_service(db: Annotated[AsyncSession, Depends(get_db_session)]) -> ClientService:
    return ClientService(db=db)


ClientServiceDep = Annotated[ClientService, Depends(get_client_service)]

router = APIRouter(tags=["Clients"])


@router.get("/", response_model=PaginatedResponse[ClientRead])
async def list_clients(service: ClientServiceDep, current_user: CurrentUserDep, pagination: PaginationParams):
    limit, offset = pagination
    items, total = await service.list_clients(current_user.id, limit=limit, offset=offset)
    return PaginatedResponse[ClientRead](items=items, total=total)


@router.post("/", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
async def create_client(service: ClientServiceDep, current_user: CurrentUserDep, data: ClientCreate):
    return await service.create_client(data, current_user.id)


@router.get("/{client_id}", response_model=ClientRead)
async def read_client(service: ClientServiceDep, current_user: CurrentUserDep, client_id: int = Path(..., ge=1)):
    try:
        return await service.get_client(client_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@router.patch("/{client_id}", response_model=ClientRead)
async def update_client(
    service: ClientServiceDep,
    current_user: CurrentUserDep,
    data: ClientUpdate,
    client_id: int = Path(..., ge=1),
):
    try:
        return await service.update_client(client_id, data, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(service: ClientServiceDep, current_user: CurrentUserDep, client_id: int = Path(..., ge=1)):
    try:
        await service.delete_client(client_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
